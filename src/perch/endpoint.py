"""Plugin endpoints and backend plugin definitions.

A backend plugin is a named bundle whose ``routes(adapter)`` factory
returns a ``RouteTable``: endpoints keyed by name, each bound to one
HTTP method and a path relative to the stack's base path.

Endpoints are plain awaitables over an ``EndpointContext``, so a route
table can be exercised directly in tests without any HTTP::

    routes = todos_backend_plugin.routes(adapter)
    todo = await routes.create_todo(EndpointContext(body={"title": "Milk"}))
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from perch._internal.invoke import invoke
from perch.extraction import extract_body

if TYPE_CHECKING:
    from perch.adapter import Adapter, Schema
    from perch.http.request import Request


@dataclass(frozen=True, slots=True)
class EndpointContext:
    """What an endpoint sees of a call: path params, body, and query."""

    params: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    query: Mapping[str, str] = field(default_factory=dict)
    request: Request | None = None

    @classmethod
    async def from_request(cls, request: Request) -> EndpointContext:
        """Build a context from a routed request, parsing any JSON body."""
        body = None if request.method in ("GET", "HEAD") else await request.json()
        return cls(
            params=dict(request.path_params),
            body=body,
            query=dict(request.query),
            request=request,
        )


@dataclass(frozen=True, slots=True)
class Endpoint:
    """One addressable operation of a plugin.

    When ``body`` names a dataclass schema, the raw body is validated and
    replaced with a schema instance before the handler runs.
    """

    name: str
    method: str
    path: str
    handler: Callable[[EndpointContext], Any]
    body: type | None = None

    async def __call__(self, ctx: EndpointContext | None = None) -> Any:
        ctx = ctx or EndpointContext()
        if self.body is not None:
            ctx = replace(ctx, body=extract_body(self.body, ctx.body))
        return await invoke(self.handler, ctx)


def endpoint(
    method: str,
    path: str,
    *,
    name: str | None = None,
    body: type | None = None,
) -> Callable[[Callable[[EndpointContext], Any]], Endpoint]:
    """Turn a handler function into an ``Endpoint`` via decorator.

    Usage::

        @endpoint("PUT", "/todos/:id", body=TodoUpdate)
        async def update_todo(ctx: EndpointContext) -> Todo: ...
    """

    def decorator(func: Callable[[EndpointContext], Any]) -> Endpoint:
        return Endpoint(
            name=name or func.__name__,
            method=method.upper(),
            path=path,
            handler=func,
            body=body,
        )

    return decorator


class RouteTable(Mapping[str, Endpoint]):
    """Endpoints keyed by name. Also readable as attributes."""

    __slots__ = ("_endpoints",)

    def __init__(self, endpoints: Mapping[str, Endpoint] | None = None) -> None:
        object.__setattr__(self, "_endpoints", dict(endpoints or {}))

    @classmethod
    def of(cls, *endpoints: Endpoint) -> RouteTable:
        """Build a table from endpoints, keyed by their names."""
        return cls({ep.name: ep for ep in endpoints})

    def __getitem__(self, name: str) -> Endpoint:
        return self._endpoints[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)

    def __getattr__(self, name: str) -> Endpoint:
        try:
            return self._endpoints[name]
        except KeyError:
            msg = f"Route table has no endpoint {name!r}"
            raise AttributeError(msg) from None

    def __repr__(self) -> str:
        return f"RouteTable({list(self._endpoints)!r})"


@dataclass(frozen=True, slots=True)
class BackendPlugin:
    """A named backend plugin: route factory plus the models it stores."""

    name: str
    routes: Callable[[Adapter], RouteTable]
    schema: Schema | None = None
