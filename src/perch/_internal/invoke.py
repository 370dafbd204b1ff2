"""Invoke helpers: call sync or async callables uniformly.

Endpoints, loaders, override callbacks and lifecycle hooks can all be
``def`` or ``async def``. Any code that calls a user-provided callable
must handle both cases. This module keeps the check in exactly one place.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(callback, *args, **kwargs)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
