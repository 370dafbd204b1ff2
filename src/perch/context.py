"""Execution context via ContextVar.

Provides:
- ``request_var``: The current backend ``Request`` for this task.
- ``window_var``: The browser window bound to the current client session,
  or nothing when code runs during server-side rendering.

Both are set by their owning runtime (the ASGI handler, the hydration
runtime) and reset afterwards. ``ContextVar`` is task-local under asyncio,
so concurrent renders never see each other's window.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from perch.http.request import Request

# -- Request context --

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the ASGI handler before dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


# -- Client window --


@dataclass(frozen=True, slots=True)
class Window:
    """The client-side execution environment a session renders into.

    ``location`` is the origin the page was served from; ``attrs`` holds
    anything else the host runtime wants to expose.
    """

    location: str = ""
    attrs: dict[str, Any] = field(default_factory=dict)


window_var: ContextVar[Window | None] = ContextVar("perch_window", default=None)
"""The bound window. ``None`` means server-side rendering."""


def is_server() -> bool:
    """True when no window is bound to the current context."""
    return window_var.get() is None


@contextmanager
def bind_window(window: Window | None = None) -> Iterator[Window]:
    """Bind a window for the duration of the block (client-side execution).

    Usage::

        with bind_window(Window(location="https://example.com")):
            await loader()  # no-op: a window is present
    """
    win = window or Window()
    token = window_var.set(win)
    try:
        yield win
    finally:
        window_var.reset(token)
