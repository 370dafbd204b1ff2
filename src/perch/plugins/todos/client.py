"""Todos client plugin: loader, metadata and route descriptors.

Usage::

    query_client = make_query_client()
    config = ClientConfig.from_env(query_client)
    stack = StackClient({"todos": todos_client_plugin(config)})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from perch.client.api import api_client_for
from perch.client.routes import MetaElement, RouteDescriptor, SitemapContribution
from perch.client.stack import ClientPlugin
from perch.context import is_server
from perch.plugins.todos.hooks import TODOS_QUERY_KEY, fetch_todos
from perch.plugins.todos.pages import (
    add_todo_page,
    form_loading,
    report_route_error,
    todos_error,
    todos_list_loading,
    todos_list_page,
)
from perch.plugins.todos.types import Todo
from perch.routing.paths import join_url

if TYPE_CHECKING:
    from perch.client.routes import Loader
    from perch.config import ClientConfig

logger = logging.getLogger("perch.todos")

TODOS_LIST_PRIORITY = 0.7
ADD_TODO_PRIORITY = 0.6


def todos_loader(config: ClientConfig) -> Loader:
    """Prefetch the todo list during server-side rendering.

    With a window bound (client side) the loader does nothing: the list
    arrives through hydration instead. On the server it fetches once; any
    failure caches an empty list so the page always has data at mount.
    """

    async def load() -> None:
        if not is_server():
            return
        api = api_client_for(config)

        async def fetch() -> tuple[Todo, ...]:
            try:
                return await fetch_todos(api)
            except Exception:
                logger.debug("Todos prefetch failed; caching an empty list", exc_info=True)
                return ()

        await config.query_client.prefetch_query(TODOS_QUERY_KEY, fetch)

    return load


def _todo_count(config: ClientConfig) -> int:
    todos = config.query_client.get_query_data(TODOS_QUERY_KEY)
    return len(todos) if todos else 0


def _page_meta(
    url: str, title: str, description: str, keywords: str
) -> list[MetaElement]:
    return [
        MetaElement("title", title),
        MetaElement("description", description),
        MetaElement("keywords", keywords),
        MetaElement("og:title", title, "property"),
        MetaElement("og:description", description, "property"),
        MetaElement("og:type", "website", "property"),
        MetaElement("og:url", url, "property"),
        MetaElement("twitter:card", "summary"),
        MetaElement("twitter:title", title),
        MetaElement("twitter:description", description),
    ]


def create_todos_meta(config: ClientConfig, path: str = "/todos") -> list[MetaElement]:
    """Metadata for the list page, from the cached count (absent counts as 0)."""
    count = _todo_count(config)
    return _page_meta(
        join_url(config.site_base_url, config.site_base_path, path),
        f"{count} Todos",
        f"Track {count} todos. Add, toggle and delete.",
        "todos, tasks, productivity",
    )


def create_add_todo_meta(config: ClientConfig, path: str = "/todos/add") -> list[MetaElement]:
    return _page_meta(
        join_url(config.site_base_url, config.site_base_path, path),
        "Add Todo",
        "Create a new todo item.",
        "add todo, create task",
    )


def todos_client_plugin(config: ClientConfig) -> ClientPlugin:
    """The todos pages, ready to register on a ``StackClient``."""
    return ClientPlugin(
        name="todos",
        site_base_url=config.site_base_url,
        site_base_path=config.site_base_path,
        routes=(
            RouteDescriptor(
                name="todos_list",
                path="/todos",
                page=todos_list_page(config),
                loader=todos_loader(config),
                meta=lambda: create_todos_meta(config, "/todos"),
                sitemap=SitemapContribution(priority=TODOS_LIST_PRIORITY),
                loading=todos_list_loading,
                error=todos_error(config),
                on_error=report_route_error("todos_list"),
            ),
            RouteDescriptor(
                name="add_todo",
                path="/todos/add",
                page=add_todo_page(config),
                meta=lambda: create_add_todo_meta(config, "/todos/add"),
                sitemap=SitemapContribution(priority=ADD_TODO_PRIORITY),
                loading=form_loading,
                error=todos_error(config),
                on_error=report_route_error("add_todo"),
            ),
        ),
    )
