"""Request pipeline: ASGI scope in, one response out.

This is where raw ASGI meets perch types. The scope becomes a
``Request``, the router picks a handler, the handler's return value is
negotiated into a ``Response`` and written back through ``send``.
"""

import inspect
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.context import request_var
from perch.endpoint import Endpoint, EndpointContext
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.routing.route import RouteMatch
from perch.routing.router import Router
from perch.server.errors import ErrorHandlers, handle_http_error, handle_internal_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    error_handlers: ErrorHandlers,
    debug: bool,
    max_content_length: int | None = None,
) -> None:
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, max_content_length=max_content_length)
    token = request_var.set(request)
    try:
        response = await _dispatch(router.match(request.method, request.path), request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)
    finally:
        request_var.reset(token)

    await send_response(response, send)


async def _dispatch(match: RouteMatch, request: Request) -> Response:
    """Run the matched handler.

    Plugin endpoints take an ``EndpointContext``. Any other callable gets
    keyword arguments picked from its signature.
    """
    handler = match.route.handler
    request = request.with_path_params(match.path_params)
    if isinstance(handler, Endpoint):
        return negotiate(await handler(await EndpointContext.from_request(request)))
    return negotiate(await invoke(handler, **_handler_kwargs(handler, request)))


def _coerce(annotation: Any, raw: str) -> Any:
    if annotation is inspect.Parameter.empty:
        return raw
    try:
        return annotation(raw)
    except (TypeError, ValueError):
        return raw


def _handler_kwargs(handler: Callable[..., Any], request: Request) -> dict[str, Any]:
    """``request`` (by name or annotation), then path params by name."""
    kwargs: dict[str, Any] = {}
    for name, param in inspect.signature(handler, eval_str=True).parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in request.path_params:
            kwargs[name] = _coerce(param.annotation, request.path_params[name])
    return kwargs
