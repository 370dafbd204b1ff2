"""Render boundary for client routes.

``render_route()`` resolves a path, runs the route's loader, and renders
its page. The result is always one of four states:

- ``ready``: the page rendered
- ``loading``: the loader did not finish within ``loader_timeout``; the
  route's loading fallback is shown instead
- ``error``: the loader or the page raised; the route's error page is
  shown and its ``on_error`` hook is told
- ``not_found``: no route matches the path

A failing loader or page never propagates out of the boundary.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Literal

import anyio

from perch._internal.invoke import invoke
from perch.client.routes import MetaElement, RouteContext
from perch.client.stack import ResolvedRoute, StackClient
from perch.context import is_server
from perch.errors import HTTPError

logger = logging.getLogger("perch.client")

type RenderStatus = Literal["ready", "loading", "error", "not_found"]

_HTTP_STATUS: dict[str, int] = {"ready": 200, "loading": 200, "error": 500, "not_found": 404}


@dataclass(frozen=True, slots=True)
class RenderResult:
    status: RenderStatus
    html: str
    route: ResolvedRoute | None = None
    error: BaseException | None = None
    meta: tuple[MetaElement, ...] = ()

    @property
    def http_status(self) -> int:
        """The status to serve; an ``HTTPError`` from the page keeps its own."""
        if isinstance(self.error, HTTPError):
            return self.error.status
        return _HTTP_STATUS[self.status]


def default_loading(ctx: RouteContext) -> str:
    return '<div class="loading" aria-busy="true">Loading…</div>'


def default_error(ctx: RouteContext, error: BaseException) -> str:
    return (
        '<div class="error" role="alert"><h1>Something went wrong</h1>'
        f"<p>{html.escape(str(error) or type(error).__name__)}</p></div>"
    )


def default_not_found(path: str) -> str:
    return f"<h1>Page not found</h1><p>{html.escape(path)}</p>"


async def render_route(
    stack: StackClient,
    path: str | list[str] | None,
    *,
    is_ssr: bool | None = None,
    loader_timeout: float | None = None,
) -> RenderResult:
    """Resolve and render *path* through the stack's routes."""
    route = stack.router.get_route(path)
    if route is None:
        shown = path if isinstance(path, str) else "/".join(path or ())
        return RenderResult(status="not_found", html=default_not_found(shown))

    descriptor = route.descriptor
    ctx = RouteContext(
        path=route.path,
        params=route.params,
        is_ssr=is_server() if is_ssr is None else is_ssr,
        overrides=route.overrides,
    )

    try:
        if route.loader is not None:
            with anyio.move_on_after(loader_timeout) as scope:
                await route.loader()
            if scope.cancelled_caught:
                logger.debug("Loader for %r timed out; rendering fallback", route.name)
                loading = descriptor.loading or default_loading
                return RenderResult(status="loading", html=loading(ctx), route=route)
        body = await invoke(descriptor.page, ctx)
    except Exception as exc:
        logger.debug("Route %r failed to render", route.name, exc_info=True)
        if descriptor.on_error is not None:
            try:
                await invoke(descriptor.on_error, ctx, exc)
            except Exception:
                logger.exception("Error hook for route %r failed", route.name)
        error_page = descriptor.error or default_error
        return RenderResult(status="error", html=error_page(ctx, exc), route=route, error=exc)

    return RenderResult(status="ready", html=body, route=route, meta=tuple(route.meta()))
