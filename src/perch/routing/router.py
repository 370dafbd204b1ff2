"""Trie router shared by the backend and the client composer.

Routes are added while the owner (``App`` or ``StackClient``) is being
set up and the trie is frozen by ``compile()``. Path parameters may be
written ``:id`` or ``{id}``; the braced form takes a converter
(``{id:int}``, ``{rest:path}``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.route import Route, RouteMatch

_ANGLE_PARAM = re.compile(r"^<[^>]+>$")

# Segment patterns per converter; converted values stay strings.
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "path": r".+",
}


@dataclass(frozen=True, slots=True)
class PathSegment:
    """One parsed segment of a route pattern."""

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


def parse_path(path: str) -> list[PathSegment]:
    """Split a route pattern into segments.

    ``"/todos/:id"`` gives a static ``todos`` segment and an ``id``
    parameter; ``"/files/{rest:path}"`` ends in a catch-all.
    """
    segments: list[PathSegment] = []
    for part in filter(None, path.strip("/").split("/")):
        if _ANGLE_PARAM.match(part):
            msg = (
                f"Route {path!r} uses <param> syntax. "
                "Use {param} or :param for path parameters."
            )
            raise ConfigurationError(msg)
        if part.startswith(":"):
            segments.append(PathSegment(part, is_param=True, param_name=part[1:]))
            continue
        if not (part.startswith("{") and part.endswith("}")):
            segments.append(PathSegment(part))
            continue
        param_name, _, param_type = part[1:-1].partition(":")
        param_type = param_type or "str"
        if param_type not in CONVERTERS:
            msg = f"Unknown converter {param_type!r} in route {path!r}"
            raise ConfigurationError(msg)
        segments.append(
            PathSegment(part, is_param=True, param_name=param_name, param_type=param_type)
        )
    return segments


@dataclass(slots=True)
class _Node:
    """Trie node. ``param`` matches one segment, ``rest`` the remainder."""

    static: dict[str, _Node] = field(default_factory=dict)
    param: _Capture | None = None
    rest: _Capture | None = None
    handlers: dict[str, Route] = field(default_factory=dict)


@dataclass(slots=True)
class _Capture:
    name: str
    converter: str
    regex: re.Pattern[str]
    node: _Node = field(default_factory=_Node)

    @classmethod
    def for_segment(cls, seg: PathSegment) -> _Capture:
        name = seg.param_name or seg.param_type
        return cls(name, seg.param_type, re.compile(f"^{CONVERTERS[seg.param_type]}$"))


class Router:
    """Maps ``(method, path)`` to a ``Route``.

    Usage::

        router = Router()
        router.add(Route("/todos", list_todos, frozenset({"GET"})))
        router.add(Route("/todos/:id", update_todo, frozenset({"PUT"})))
        router.compile()
        match = router.match("PUT", "/todos/42")
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _Node()
        self._compiled = False

    def add(self, route: Route) -> None:
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if not seg.is_param:
                node = node.static.setdefault(seg.value, _Node())
            elif seg.param_type == "path":
                node.rest = node.rest or _Capture.for_segment(seg)
                node = node.rest.node
                break
            else:
                node = _param_child(node, seg, route.path)

        for method in route.methods:
            existing = node.handlers.get(method)
            if existing is not None:
                msg = f"Duplicate route: {method} {route.path!r} (already {existing.path!r})"
                raise ConfigurationError(msg)
            node.handlers[method] = route

    def compile(self) -> None:
        """Freeze the table; ``add()`` raises from here on."""
        self._compiled = True

    @property
    def routes(self) -> list[Route]:
        """Every registered route, once each."""
        found: dict[int, Route] = {}
        pending = [self._root]
        while pending:
            node = pending.pop(0)
            for route in node.handlers.values():
                found.setdefault(id(route), route)
            pending.extend(node.static.values())
            pending.extend(c.node for c in (node.param, node.rest) if c is not None)
        return list(found.values())

    def match(self, method: str, path: str) -> RouteMatch:
        """Find the route for *method* at *path*.

        ``NotFound`` when nothing serves the path, ``MethodNotAllowed``
        (listing the methods that are served) when the path is known.
        """
        found = _walk(self._root, [p for p in path.split("/") if p], {})
        if found is None:
            raise NotFound(f"No route matches {method} {path!r}")
        node, params = found
        route = node.handlers.get(method)
        if route is None:
            raise MethodNotAllowed(frozenset(node.handlers))
        return RouteMatch(route=route, path_params=params)


def _param_child(node: _Node, seg: PathSegment, path: str) -> _Node:
    if node.param is None:
        node.param = _Capture.for_segment(seg)
    elif (node.param.name, node.param.converter) != (seg.param_name, seg.param_type):
        msg = (
            f"Route {path!r} declares parameter {seg.param_name!r} where "
            f"{node.param.name!r} is already registered."
        )
        raise ConfigurationError(msg)
    return node.param.node


def _walk(
    node: _Node, parts: list[str], params: dict[str, str]
) -> tuple[_Node, dict[str, str]] | None:
    # Static beats param beats rest.
    if not parts:
        return (node, params) if node.handlers else None

    head, tail = parts[0], parts[1:]
    if head in node.static:
        found = _walk(node.static[head], tail, params)
        if found is not None:
            return found
    if node.param is not None and node.param.regex.match(head):
        found = _walk(node.param.node, tail, {**params, node.param.name: head})
        if found is not None:
            return found
    if node.rest is not None and node.rest.node.handlers:
        return node.rest.node, {**params, node.rest.name: "/".join(parts)}
    return None
