"""Todo queries and optimistic mutations.

The list lives in the cache under ``TODOS_QUERY_KEY`` as a tuple of
``Todo``. Every transform below returns a new tuple and leaves its input
alone; given no cached list they return ``None``, which leaves the cache
entry absent rather than inventing a list.

Usage::

    toggle = use_toggle_todo(config, on_error=report)
    await toggle.mutate(ToggleTodo(id="t1", completed=True))
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from perch._internal.invoke import invoke
from perch.client.api import ApiClient, api_client_for
from perch.client.mutation import Mutation, MutationContext, optimistic_mutation
from perch.client.query import QueryResult, use_query
from perch.plugins.todos.types import Todo, TodoCreate, todos_from_json

if TYPE_CHECKING:
    from perch.config import ClientConfig

TODOS_QUERY_KEY = ("todos",)
OPTIMISTIC_ID_PREFIX = "optimistic-"

type Todos = Sequence[Todo] | None


@dataclass(frozen=True, slots=True)
class ToggleTodo:
    id: str
    completed: bool


# -- Pure transforms --


def toggle_todo_in(todos: Todos, todo_id: str, completed: bool) -> tuple[Todo, ...] | None:
    if todos is None:
        return None
    return tuple(replace(t, completed=completed) if t.id == todo_id else t for t in todos)


def remove_todo_from(todos: Todos, todo_id: str) -> tuple[Todo, ...] | None:
    if todos is None:
        return None
    return tuple(t for t in todos if t.id != todo_id)


def prepend_todo_to(todos: Todos, todo: Todo) -> tuple[Todo, ...] | None:
    if todos is None:
        return None
    return (todo, *todos)


def replace_todo_in(todos: Todos, todo_id: str, todo: Todo) -> tuple[Todo, ...] | None:
    if todos is None:
        return None
    return tuple(todo if t.id == todo_id else t for t in todos)


# -- Queries --


async def fetch_todos(api: ApiClient) -> tuple[Todo, ...]:
    """One ``GET /todos`` through the API invoker."""
    response = await api("/todos")
    return todos_from_json(response.data)


async def use_todos(config: ClientConfig) -> QueryResult[tuple[Todo, ...]]:
    api = api_client_for(config)
    return await use_query(config.query_client, TODOS_QUERY_KEY, lambda: fetch_todos(api))


# -- Mutations --


def use_toggle_todo(
    config: ClientConfig,
    *,
    on_success: Callable[..., Any] | None = None,
    on_error: Callable[..., Any] | None = None,
) -> Mutation:
    """Flip a todo's completion flag, optimistically."""
    api = api_client_for(config)

    async def toggle(variables: ToggleTodo) -> Todo:
        response = await api(
            "@put/todos/:id",
            params={"id": variables.id},
            body={"completed": variables.completed},
        )
        return Todo.from_json(response.data)

    return optimistic_mutation(
        config.query_client,
        TODOS_QUERY_KEY,
        toggle,
        lambda todos, v, _: toggle_todo_in(todos, v.id, v.completed),
        on_success=on_success,
        on_error=on_error,
    )


def use_delete_todo(
    config: ClientConfig,
    *,
    on_success: Callable[..., Any] | None = None,
    on_error: Callable[..., Any] | None = None,
) -> Mutation:
    """Delete a todo by id, removing it from the list optimistically."""
    api = api_client_for(config)

    async def delete(todo_id: str) -> Any:
        response = await api("@delete/todos/:id", params={"id": todo_id})
        return response.data

    return optimistic_mutation(
        config.query_client,
        TODOS_QUERY_KEY,
        delete,
        lambda todos, todo_id, _: remove_todo_from(todos, todo_id),
        on_success=on_success,
        on_error=on_error,
    )


def use_create_todo(
    config: ClientConfig,
    *,
    on_success: Callable[..., Any] | None = None,
    on_error: Callable[..., Any] | None = None,
) -> Mutation:
    """Create a todo, showing a provisional item until the server answers.

    The provisional item's id starts with ``optimistic-``; on success it
    is swapped for the item the server returned.
    """
    client = config.query_client
    api = api_client_for(config)

    async def create(variables: TodoCreate) -> Todo:
        body: dict[str, Any] = {"title": variables.title}
        if variables.completed is not None:
            body["completed"] = variables.completed
        response = await api("@post/todos", body=body)
        return Todo.from_json(response.data)

    def prepare(variables: TodoCreate) -> dict[str, Any]:
        return {
            "provisional": Todo(
                id=f"{OPTIMISTIC_ID_PREFIX}{uuid.uuid4().hex}",
                title=variables.title,
                completed=bool(variables.completed),
                created_at=datetime.now(UTC),
            )
        }

    async def reconcile(
        created: Todo, variables: TodoCreate, context: MutationContext | None
    ) -> None:
        if context is not None:
            provisional: Todo = context.meta["provisional"]
            client.set_query_data(
                TODOS_QUERY_KEY, lambda todos: replace_todo_in(todos, provisional.id, created)
            )
        if on_success is not None:
            await invoke(on_success, created, variables, context)

    return optimistic_mutation(
        client,
        TODOS_QUERY_KEY,
        create,
        lambda todos, _, meta: prepend_todo_to(todos, meta["provisional"]),
        prepare=prepare,
        on_success=reconcile,
        on_error=on_error,
    )
