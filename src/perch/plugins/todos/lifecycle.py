"""Route lifecycle: the before-render hook, called once per page mount."""

import logging
from typing import Any

from perch._internal.invoke import invoke
from perch.client.routes import RouteContext

logger = logging.getLogger("perch.todos")


class RouteLifecycle:
    """Runs a page's before-render hook at most once.

    A hook that raises is logged and treated as allowing the render; a
    hook that returns ``False`` blocks it.
    """

    __slots__ = ("_allowed", "_called", "context", "hook", "route_name")

    def __init__(self, route_name: str, context: RouteContext, hook: Any = None) -> None:
        self.route_name = route_name
        self.context = context
        self.hook = hook
        self._called = False
        self._allowed = True

    @property
    def called(self) -> bool:
        return self._called

    async def before_render(self) -> bool:
        if self._called or self.hook is None:
            return self._allowed
        self._called = True
        try:
            result = await invoke(self.hook, self.context)
        except Exception:
            logger.exception("Error in before-render hook for %s", self.route_name)
            return self._allowed
        self._allowed = result is not False
        return self._allowed
