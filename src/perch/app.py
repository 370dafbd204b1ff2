"""The backend: plugins mounted on one ASGI app.

Setup (plugins, extra routes, error handlers, lifespan hooks) happens
before serving. The first request or lifespan event compiles the route
table, after which the app refuses further changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.adapter import Adapter, Schema
from perch.config import StackConfig
from perch.endpoint import BackendPlugin, RouteTable
from perch.errors import ConfigurationError
from perch.routing.paths import join_path
from perch.routing.route import Route
from perch.routing.router import Router
from perch.server.errors import ErrorHandlers
from perch.server.handler import handle_request

logger = logging.getLogger("perch.server")

type Hook = Callable[[], Any]


class App:
    """Mounts backend plugins under ``config.base_path``::

        app = App(StackConfig(base_path="/api/data"), adapter=adapter)
        app.register_plugin("todos", todos_backend_plugin)
        # GET /api/data/todos, POST /api/data/todos, ...

    Compilation takes a lock so concurrent first requests build the
    router exactly once.
    """

    __slots__ = (
        "_adapter",
        "_compile_lock",
        "_error_handlers",
        "_plugins",
        "_router",
        "_routes",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: StackConfig | None = None, *, adapter: Adapter) -> None:
        self.config = config or StackConfig()
        self._adapter = adapter
        self._routes: list[Route] = []
        self._plugins: dict[str, tuple[BackendPlugin, RouteTable]] = {}
        self._error_handlers: ErrorHandlers = {}
        self._startup_hooks: list[Hook] = []
        self._shutdown_hooks: list[Hook] = []
        self._compile_lock = threading.Lock()
        self._router: Router | None = None

    # -- Plugins --

    def register_plugin(self, name: str, plugin: BackendPlugin) -> RouteTable:
        """Mount every endpoint of *plugin* under the stack base path.

        The route table is built once, against this app's adapter, and
        returned so callers can invoke endpoints directly.
        """
        self._check_open()
        if name in self._plugins:
            msg = f"Plugin {name!r} is already registered"
            raise ConfigurationError(msg)

        table = plugin.routes(self._adapter)
        self._routes.extend(
            Route(
                join_path(self.config.base_path, endpoint.path),
                endpoint,
                frozenset({endpoint.method}),
                name=f"{name}.{endpoint.name}",
            )
            for endpoint in table.values()
        )
        self._plugins[name] = (plugin, table)
        logger.debug("Registered plugin %r with %d endpoints", name, len(table))
        return table

    def plugin_routes(self, name: str) -> RouteTable:
        try:
            _, table = self._plugins[name]
        except KeyError:
            msg = f"No plugin named {name!r} is registered"
            raise LookupError(msg) from None
        return table

    @property
    def db_schema(self) -> Schema:
        """Every registered plugin's models, merged."""
        schema = Schema()
        for plugin, _ in self._plugins.values():
            if plugin.schema is not None:
                schema = schema | plugin.schema
        return schema

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    # -- Setup decorators --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Add a plain handler at *path* (``GET`` unless *methods* says otherwise).

        Handlers may take ``request`` and any path parameter by name.
        """

        def register(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_open()
            allowed = frozenset(m.upper() for m in methods or ("GET",))
            self._routes.append(Route(path, func, allowed, name=name))
            return func

        return register

    def error(
        self, key: int | type[Exception]
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Handle a status code or exception type with the decorated function."""

        def register(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_open()
            self._error_handlers[key] = func
            return func

        return register

    def on_startup(self, func: Hook) -> Hook:
        self._check_open()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        self._check_open()
        self._shutdown_hooks.append(func)
        return func

    # -- ASGI --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        router = self._ensure_frozen()
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        await handle_request(
            scope,
            receive,
            send,
            router=router,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            event = (await receive())["type"]
            if event == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        await invoke(hook)
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif event == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await send({"type": "lifespan.shutdown.complete"})
                return

    def _ensure_frozen(self) -> Router:
        """Compile the route table on first use and return it."""
        if self._router is None:
            with self._compile_lock:
                if self._router is None:
                    router = Router()
                    for route in self._routes:
                        router.add(route)
                    router.compile()
                    self._router = router
        return self._router

    def _check_open(self) -> None:
        if self._router is not None:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register plugins, routes, and hooks before the first request."
            )
            raise RuntimeError(msg)
