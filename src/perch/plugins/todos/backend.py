"""Todos backend: CRUD endpoints over the storage adapter.

Mounted by the host under its base path::

    app.register_plugin("todos", todos_backend_plugin)

    GET    /todos        list, newest first
    POST   /todos        create (title required)
    PUT    /todos/:id    partial update
    DELETE /todos/:id    delete
"""

import logging
from datetime import UTC, datetime
from typing import Any

from perch.adapter import Adapter, Row, SortBy, Where
from perch.endpoint import BackendPlugin, EndpointContext, RouteTable, endpoint
from perch.errors import NotFound
from perch.plugins.todos.schema import TODO_MODEL, todos_schema
from perch.plugins.todos.types import TodoCreate, TodoUpdate

logger = logging.getLogger("perch.todos")

TODO_NOT_FOUND = "Todo not found"


def _by_id(ctx: EndpointContext) -> list[Where]:
    return [Where("id", ctx.params["id"])]


def todos_routes(adapter: Adapter) -> RouteTable:
    """Build the todos route table against *adapter*."""

    @endpoint("GET", "/todos")
    async def list_todos(ctx: EndpointContext) -> list[Row]:
        todos = await adapter.find_many(TODO_MODEL, sort_by=SortBy("createdAt", "desc"))
        return todos or []

    @endpoint("POST", "/todos", body=TodoCreate)
    async def create_todo(ctx: EndpointContext) -> Row:
        body: TodoCreate = ctx.body
        data: dict[str, Any] = {
            "title": body.title,
            "completed": body.completed if body.completed is not None else False,
            "createdAt": datetime.now(UTC),
        }
        todo = await adapter.create(TODO_MODEL, data)
        logger.debug("Created todo %r", todo.get("id") if todo else None)
        return todo

    @endpoint("PUT", "/todos/:id", body=TodoUpdate)
    async def update_todo(ctx: EndpointContext) -> Row:
        body: TodoUpdate = ctx.body
        updated = await adapter.update(TODO_MODEL, _by_id(ctx), body.changes())
        if updated is None:
            raise NotFound(TODO_NOT_FOUND)
        return updated

    @endpoint("DELETE", "/todos/:id")
    async def delete_todo(ctx: EndpointContext) -> dict[str, bool]:
        await adapter.delete(TODO_MODEL, _by_id(ctx))
        return {"success": True}

    return RouteTable.of(list_todos, create_todo, update_todo, delete_todo)


todos_backend_plugin = BackendPlugin(name="todos", routes=todos_routes, schema=todos_schema)
