"""Routes as the router stores them, and the result of a lookup."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Route:
    """One path pattern bound to a target for a set of methods.

    The backend binds endpoints and plain handlers; the client composer
    binds page descriptors. ``name`` is namespaced by the owner, for
    example ``"todos.update_todo"``.
    """

    path: str
    handler: Callable[..., Any]
    methods: frozenset[str]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    route: Route
    path_params: dict[str, str] = field(default_factory=dict)
