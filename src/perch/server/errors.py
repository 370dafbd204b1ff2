"""Turns exceptions raised during dispatch into JSON error responses.

Every error body has the same shape::

    {"status": 404, "message": "Todo not found"}

``ValidationError`` adds ``"errors"`` (field name to messages). An app
may take over any status or exception type with ``@app.error()``.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import HTTPError, ValidationError
from perch.http.request import Request
from perch.http.response import Response
from perch.server.negotiation import negotiate

logger = logging.getLogger("perch.server")

type ErrorHandlers = dict[int | type, Callable[..., Any]]


def error_body(status: int, message: str, **extra: Any) -> dict[str, Any]:
    return {"status": status, "message": message, **extra}


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Call a registered handler with as many of ``(request, exc)`` as it takes."""
    arity = len(inspect.signature(handler).parameters)
    args = (request, exc)[: min(arity, 2)]
    return negotiate(await invoke(handler, *args))


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: ErrorHandlers,
) -> Response:
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # A handler that left the default status keeps the error's status
        return response.with_status(exc.status) if response.status == 200 else response

    extra = {"errors": exc.errors} if isinstance(exc, ValidationError) else {}
    body = error_body(exc.status, exc.detail or f"Error {exc.status}", **extra)
    return Response.from_json(body, status=exc.status).with_headers(dict(exc.headers))


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    """Log the failure and answer 500. ``debug`` exposes the exception text."""
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(500) or error_handlers.get(type(exc))
    if handler is not None:
        return await call_error_handler(handler, request, exc)

    message = f"{type(exc).__name__}: {exc}" if debug else "Internal Server Error"
    return Response.from_json(error_body(500, message), status=500)
