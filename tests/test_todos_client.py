"""Tests for perch.plugins.todos.client: loader, metadata, sitemap."""

from datetime import UTC, datetime

import httpx
import pytest
from conftest import MemoryAdapter, make_config, seed_todo

from perch.client.cache import QueryClient
from perch.client.routes import meta_elements_to_object
from perch.config import ClientConfig
from perch.context import bind_window
from perch.plugins.todos.client import (
    create_add_todo_meta,
    create_todos_meta,
    todos_client_plugin,
    todos_loader,
)
from perch.plugins.todos.hooks import TODOS_QUERY_KEY
from perch.plugins.todos.types import Todo


class CountingHandler:
    def __init__(self, response: httpx.Response | None = None, *, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail
        self.response = response or httpx.Response(200, json=[])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.fail:
            raise httpx.ConnectError("offline", request=request)
        return self.response


def _title(elements) -> str:
    return next(el.content for el in elements if el.key == "title")


class TestTodosLoader:
    async def test_noop_with_window(self, query_client: QueryClient) -> None:
        handler = CountingHandler()
        loader = todos_loader(make_config(query_client, httpx.MockTransport(handler)))
        with bind_window():
            await loader()
        assert handler.calls == 0
        assert query_client.get_query_state(TODOS_QUERY_KEY) is None

    async def test_one_fetch_on_server(self, query_client: QueryClient) -> None:
        body = [{"id": "1", "title": "Milk", "completed": False, "createdAt": "2026-01-01T00:00:00Z"}]
        handler = CountingHandler(httpx.Response(200, json=body))
        await todos_loader(make_config(query_client, httpx.MockTransport(handler)))()
        assert handler.calls == 1
        [todo] = query_client.get_query_data(TODOS_QUERY_KEY)
        assert todo == Todo("1", "Milk", datetime(2026, 1, 1, tzinfo=UTC))

    async def test_failure_caches_empty_list(self, query_client: QueryClient) -> None:
        handler = CountingHandler(fail=True)
        await todos_loader(make_config(query_client, httpx.MockTransport(handler)))()
        assert handler.calls == 1
        assert query_client.get_query_data(TODOS_QUERY_KEY) == ()
        assert query_client.get_query_state(TODOS_QUERY_KEY).status == "success"

    async def test_against_backend(self, config: ClientConfig, adapter: MemoryAdapter) -> None:
        seed_todo(adapter, "Milk")
        await todos_loader(config)()
        assert len(config.query_client.get_query_data(TODOS_QUERY_KEY)) == 1


class TestMetadata:
    def test_count_from_cache(self, config: ClientConfig) -> None:
        now = datetime.now(UTC)
        config.query_client.set_query_data(
            TODOS_QUERY_KEY, (Todo("1", "a", now), Todo("2", "b", now))
        )
        elements = create_todos_meta(config, "/todos")
        assert _title(elements) == "2 Todos"

    @pytest.mark.parametrize("data", [None, ()])
    def test_absent_or_empty_is_zero(self, config: ClientConfig, data) -> None:
        if data is not None:
            config.query_client.set_query_data(TODOS_QUERY_KEY, data)
        assert _title(create_todos_meta(config)) == "0 Todos"

    def test_shape(self, config: ClientConfig) -> None:
        meta = meta_elements_to_object(create_todos_meta(config))
        assert meta["description"] == "Track 0 todos. Add, toggle and delete."
        assert meta["keywords"] == ["todos", "tasks", "productivity"]
        assert meta["open_graph"] == {
            "title": "0 Todos",
            "description": "Track 0 todos. Add, toggle and delete.",
            "type": "website",
            "url": "https://example.com/app/todos",
        }
        assert meta["twitter"]["card"] == "summary"

    def test_attributes(self, config: ClientConfig) -> None:
        elements = {el.key: el for el in create_add_todo_meta(config)}
        assert elements["og:title"].attribute == "property"
        assert elements["twitter:title"].attribute == "name"
        assert elements["title"].render() == "<title>Add Todo</title>"
        assert elements["description"].render() == (
            '<meta name="description" content="Create a new todo item.">'
        )

    def test_meta_does_not_fetch(self, query_client: QueryClient) -> None:
        handler = CountingHandler()
        create_todos_meta(make_config(query_client, httpx.MockTransport(handler)))
        assert handler.calls == 0


class TestClientPlugin:
    def test_descriptors(self, config: ClientConfig) -> None:
        plugin = todos_client_plugin(config)
        assert [(d.name, d.path) for d in plugin.routes] == [
            ("todos_list", "/todos"),
            ("add_todo", "/todos/add"),
        ]
        assert plugin.route("todos_list").loader is not None
        assert plugin.route("add_todo").loader is None
        with pytest.raises(LookupError):
            plugin.route("edit_todo")

    async def test_sitemap_prefixes_site_base_path(self, config: ClientConfig) -> None:
        entries = await todos_client_plugin(config).generate_sitemap()
        assert [(e.url, e.priority) for e in entries] == [
            ("https://example.com/app/todos", 0.7),
            ("https://example.com/app/todos/add", 0.6),
        ]

    async def test_sitemap_dates_are_generation_time(self, config: ClientConfig) -> None:
        before = datetime.now(UTC)
        entries = await todos_client_plugin(config).generate_sitemap()
        assert all(e.last_modified >= before for e in entries)
        assert entries[0].to_json()["lastModified"] == entries[0].last_modified.isoformat()

    async def test_sitemap_without_base_path(self, query_client: QueryClient) -> None:
        config = make_config(
            query_client, httpx.MockTransport(CountingHandler()), site_base_path=""
        )
        entries = await todos_client_plugin(config).generate_sitemap()
        assert entries[0].url == "https://example.com/todos"
