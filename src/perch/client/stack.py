"""Client-side composition of plugins.

``StackClient`` takes the host's client plugins (keyed by plugin name),
compiles every route descriptor into one router, and aggregates sitemaps.
The host also registers each plugin's override set here; plugins read it
per render through ``get_overrides()``.

Usage::

    stack = StackClient(
        {"todos": todos_client_plugin(config)},
        overrides={"todos": TodosPluginOverrides(navigate=go)},
    )
    route = stack.router.get_route("/todos")
    entries = await stack.generate_sitemap()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import anyio

from perch._internal.invoke import invoke
from perch.client.routes import MetaElement, RouteDescriptor, SitemapEntry
from perch.errors import ConfigurationError, HTTPError
from perch.routing.paths import join_path, join_url, normalize_path
from perch.routing.route import Route
from perch.routing.router import Router

logger = logging.getLogger("perch.client")


@dataclass(frozen=True, slots=True)
class ClientPlugin:
    """A client plugin: its route descriptors and where its site lives.

    The default sitemap has one entry per descriptor that declares a
    sitemap contribution. A plugin with dynamic pages may pass its own
    ``sitemap`` coroutine instead.
    """

    name: str
    routes: tuple[RouteDescriptor, ...]
    site_base_url: str = ""
    site_base_path: str = ""
    sitemap: Callable[[], Awaitable[list[SitemapEntry]]] | None = None

    def route(self, name: str) -> RouteDescriptor:
        for descriptor in self.routes:
            if descriptor.name == name:
                return descriptor
        msg = f"Plugin {self.name!r} has no route named {name!r}"
        raise LookupError(msg)

    def url_for(self, path: str) -> str:
        """Absolute site URL of a plugin-relative path."""
        return join_url(self.site_base_url, self.site_base_path, path)

    async def generate_sitemap(self, now: datetime | None = None) -> list[SitemapEntry]:
        if self.sitemap is not None:
            return list(await invoke(self.sitemap))
        stamp = now or datetime.now(UTC)
        return [
            SitemapEntry(
                url=self.url_for(descriptor.path),
                last_modified=stamp,
                priority=descriptor.sitemap.priority,
                change_frequency=descriptor.sitemap.change_frequency,
            )
            for descriptor in self.routes
            if descriptor.sitemap is not None
        ]


@dataclass(frozen=True, slots=True)
class ResolvedRoute:
    """A descriptor matched against a concrete path."""

    plugin: str
    descriptor: RouteDescriptor
    path: str
    params: Mapping[str, str] = field(default_factory=dict)
    overrides: Any = None

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def loader(self) -> Callable[[], Awaitable[None]] | None:
        return self.descriptor.loader

    @property
    def page(self) -> Any:
        return self.descriptor.page

    def meta(self) -> list[MetaElement]:
        if self.descriptor.meta is None:
            return []
        return list(self.descriptor.meta())


class StackRouter:
    """Resolves request paths to plugin routes.

    Built on the same trie router as the backend; descriptors register
    as ``GET`` routes named ``"<plugin>.<route>"``.
    """

    __slots__ = ("_owner", "_router")

    def __init__(self, owner: StackClient) -> None:
        self._owner = owner
        self._router = Router()
        for plugin_name, plugin in owner.plugins.items():
            for descriptor in plugin.routes:
                self._router.add(
                    Route(
                        path=descriptor.path,
                        handler=_Target(plugin_name, descriptor),  # type: ignore[arg-type]
                        methods=frozenset({"GET"}),
                        name=f"{plugin_name}.{descriptor.name}",
                    )
                )
        self._router.compile()

    def get_route(self, path: str | list[str] | None) -> ResolvedRoute | None:
        """Resolve *path* (or catch-all segments) to a route, or ``None``."""
        normalized = normalize_path(path)
        base = self._owner.base_path
        if base != "/" and (normalized == base or normalized.startswith(base + "/")):
            normalized = normalize_path(normalized[len(base):])
        try:
            match = self._router.match("GET", normalized)
        except HTTPError:
            return None
        target: _Target = match.route.handler  # type: ignore[assignment]
        return ResolvedRoute(
            plugin=target.plugin,
            descriptor=target.descriptor,
            path=normalized,
            params=match.path_params,
            overrides=self._owner.get_overrides(target.plugin),
        )

    @property
    def routes(self) -> list[Route]:
        return self._router.routes


@dataclass(frozen=True, slots=True)
class _Target:
    plugin: str
    descriptor: RouteDescriptor

    def __call__(self) -> None:
        msg = "Client routes are resolved, not dispatched"
        raise TypeError(msg)


class StackClient:
    """The host's view of every client plugin.

    ``base_path`` is the site prefix pages are served under (for example
    ``/pages``); paths given to ``router.get_route()`` may include it.
    """

    __slots__ = ("_overrides", "base_path", "plugins", "router")

    def __init__(
        self,
        plugins: Mapping[str, ClientPlugin],
        *,
        overrides: Mapping[str, Any] | None = None,
        base_path: str = "",
    ) -> None:
        if not plugins:
            msg = "StackClient needs at least one plugin"
            raise ConfigurationError(msg)
        self.plugins: dict[str, ClientPlugin] = dict(plugins)
        self.base_path = join_path(base_path)
        self._overrides: dict[str, Any] = dict(overrides or {})
        self.router = StackRouter(self)

    def get_overrides(self, plugin_name: str, default: Any = None) -> Any:
        """The override set registered for *plugin_name*."""
        return self._overrides.get(plugin_name, default)

    def set_overrides(self, plugin_name: str, overrides: Any) -> None:
        """Swap a plugin's override set. Later renders see the new one."""
        self._overrides = {**self._overrides, plugin_name: overrides}

    async def generate_sitemap(self) -> list[SitemapEntry]:
        """Every plugin's sitemap entries, gathered concurrently.

        Entries keep plugin registration order. One generation time is
        shared by every default sitemap so the stamps agree.
        """
        now = datetime.now(UTC)
        results: dict[str, list[SitemapEntry]] = {}

        async def collect(name: str, plugin: ClientPlugin) -> None:
            results[name] = await plugin.generate_sitemap(now)

        async with anyio.create_task_group() as tg:
            for name, plugin in self.plugins.items():
                tg.start_soon(collect, name, plugin)

        entries: list[SitemapEntry] = []
        for name in self.plugins:
            entries.extend(results.get(name, ()))
        logger.debug("Generated sitemap with %d entries", len(entries))
        return entries
