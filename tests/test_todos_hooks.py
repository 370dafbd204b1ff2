"""Tests for perch.plugins.todos.hooks: transforms and optimistic hooks."""

from dataclasses import replace
from datetime import UTC, datetime

import httpx
import pytest
from conftest import MemoryAdapter, make_config, seed_todo

from perch.client.cache import QueryClient
from perch.config import ClientConfig
from perch.errors import ApiError, TransientFetchError
from perch.plugins.todos.hooks import (
    OPTIMISTIC_ID_PREFIX,
    TODOS_QUERY_KEY,
    ToggleTodo,
    prepend_todo_to,
    remove_todo_from,
    replace_todo_in,
    toggle_todo_in,
    use_create_todo,
    use_delete_todo,
    use_todos,
    use_toggle_todo,
)
from perch.plugins.todos.types import Todo, TodoCreate

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def todo(id: str, completed: bool = False) -> Todo:
    return Todo(id=id, title=f"todo {id}", created_at=NOW, completed=completed)


def failing_config(query_client: QueryClient, *, status: int | None = 500) -> ClientConfig:
    """A config whose every API call fails (HTTP error, or transport error)."""

    def handler(request: httpx.Request) -> httpx.Response:
        if status is None:
            raise httpx.ConnectError("offline", request=request)
        return httpx.Response(status, json={"status": status, "message": "server said no"})

    return make_config(query_client, httpx.MockTransport(handler))


class TestTransforms:
    def test_toggle(self) -> None:
        todos = (todo("1"), todo("2"))
        toggled = toggle_todo_in(todos, "1", True)
        assert [t.completed for t in toggled] == [True, False]
        assert [t.completed for t in todos] == [False, False]
        assert toggled is not todos
        assert toggled[1] is todos[1]

    def test_toggle_list_input_is_untouched(self) -> None:
        todos = [todo("1"), todo("2")]
        toggle_todo_in(todos, "1", True)
        assert todos == [todo("1"), todo("2")]

    @pytest.mark.parametrize(
        "transform",
        [
            lambda todos: toggle_todo_in(todos, "1", True),
            lambda todos: remove_todo_from(todos, "1"),
            lambda todos: prepend_todo_to(todos, todo("9")),
            lambda todos: replace_todo_in(todos, "1", todo("9")),
        ],
    )
    def test_absent_stays_absent(self, transform) -> None:
        assert transform(None) is None

    def test_empty_is_not_absent(self) -> None:
        assert remove_todo_from((), "1") == ()

    def test_remove_prepend_replace(self) -> None:
        todos = (todo("1"), todo("2"))
        assert remove_todo_from(todos, "1") == (todo("2"),)
        assert prepend_todo_to(todos, todo("0"))[0] == todo("0")
        assert replace_todo_in(todos, "2", todo("3")) == (todo("1"), todo("3"))


class TestUseTodos:
    async def test_reads_through_api(self, config: ClientConfig, adapter: MemoryAdapter) -> None:
        seed_todo(adapter, "Milk")
        result = await use_todos(config)
        assert result.is_ready
        [item] = result.data
        assert isinstance(item, Todo)
        assert item.title == "Milk"
        assert config.query_client.get_query_data(TODOS_QUERY_KEY) == result.data

    async def test_error_state(self, query_client: QueryClient) -> None:
        result = await use_todos(failing_config(query_client))
        assert result.is_error
        assert isinstance(result.error, ApiError)


class TestToggleTodo:
    async def test_success(self, config: ClientConfig, adapter: MemoryAdapter) -> None:
        row = seed_todo(adapter, "Milk")
        await use_todos(config)
        await use_toggle_todo(config).mutate_async(ToggleTodo(id=row["id"], completed=True))

        state = config.query_client.get_query_state(TODOS_QUERY_KEY)
        assert state.data[0].completed is True
        assert state.is_invalidated
        assert adapter.rows["todo"][0]["completed"] is True

    @pytest.mark.parametrize("status", [500, None])
    async def test_failure_restores_snapshot(self, query_client: QueryClient, status) -> None:
        snapshot = (todo("1"), todo("2"))
        query_client.set_query_data(TODOS_QUERY_KEY, snapshot)
        config = failing_config(query_client, status=status)
        errors = []

        toggle = use_toggle_todo(config, on_error=lambda error, v, ctx: errors.append(error))
        await toggle.mutate(ToggleTodo(id="1", completed=True))

        assert query_client.get_query_data(TODOS_QUERY_KEY) is snapshot
        expected = ApiError if status else TransientFetchError
        assert isinstance(errors[0], expected)
        assert toggle.status == "error"

    async def test_absent_cache_stays_absent(self, query_client: QueryClient) -> None:
        config = failing_config(query_client)
        await use_toggle_todo(config).mutate(ToggleTodo(id="1", completed=True))
        assert query_client.get_query_state(TODOS_QUERY_KEY) is None


class TestDeleteTodo:
    async def test_success(self, config: ClientConfig, adapter: MemoryAdapter) -> None:
        row = seed_todo(adapter, "Milk")
        await use_todos(config)
        await use_delete_todo(config).mutate_async(row["id"])
        assert config.query_client.get_query_data(TODOS_QUERY_KEY) == ()
        assert adapter.rows["todo"] == []

    async def test_failure_restores_snapshot(self, query_client: QueryClient) -> None:
        snapshot = (todo("1"),)
        query_client.set_query_data(TODOS_QUERY_KEY, snapshot)
        await use_delete_todo(failing_config(query_client)).mutate("1")
        assert query_client.get_query_data(TODOS_QUERY_KEY) is snapshot


class TestCreateTodo:
    async def test_provisional_item_replaced_by_server_item(
        self, config: ClientConfig, adapter: MemoryAdapter
    ) -> None:
        config.query_client.set_query_data(TODOS_QUERY_KEY, (todo("old"),))
        seen: list[tuple[Todo, ...]] = []
        config.query_client.subscribe(lambda event: seen.append(event.state and event.state.data))

        created = await use_create_todo(config).mutate_async(TodoCreate(title="Milk"))

        provisional = seen[0][0]
        assert provisional.id.startswith(OPTIMISTIC_ID_PREFIX)
        assert provisional.title == "Milk"
        data = config.query_client.get_query_data(TODOS_QUERY_KEY)
        assert data == (created, todo("old"))
        assert created.id == adapter.rows["todo"][0]["id"]

    async def test_success_callback(self, config: ClientConfig) -> None:
        config.query_client.set_query_data(TODOS_QUERY_KEY, ())
        results = []
        create = use_create_todo(config, on_success=lambda todo, v, ctx: results.append(todo))
        await create.mutate_async(TodoCreate(title="Milk", completed=True))
        assert results[0].completed is True

    async def test_validation_failure_rolls_back(self, config: ClientConfig) -> None:
        snapshot = (todo("1"),)
        config.query_client.set_query_data(TODOS_QUERY_KEY, snapshot)
        with pytest.raises(ApiError) as exc_info:
            await use_create_todo(config).mutate_async(TodoCreate(title=" "))
        assert exc_info.value.status == 400
        assert config.query_client.get_query_data(TODOS_QUERY_KEY) is snapshot

    async def test_absent_cache_is_not_synthesized(self, config: ClientConfig) -> None:
        await use_create_todo(config).mutate_async(TodoCreate(title="Milk"))
        assert config.query_client.get_query_state(TODOS_QUERY_KEY) is None


def test_todo_wire_shape() -> None:
    item = todo("1")
    assert Todo.from_json(item.to_json()) == item
    naive = replace(item, created_at=datetime(2026, 1, 1))
    assert Todo.from_json(naive.to_json()).created_at.tzinfo is UTC
