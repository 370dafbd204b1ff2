"""Todos: the reference resource plugin.

Backend CRUD endpoints over the host adapter, plus two client pages
(the list and the add form) with optimistic toggle, delete, and create.
"""

from perch.plugins.todos.backend import todos_backend_plugin, todos_routes
from perch.plugins.todos.client import (
    create_add_todo_meta,
    create_todos_meta,
    todos_client_plugin,
    todos_loader,
)
from perch.plugins.todos.hooks import (
    TODOS_QUERY_KEY,
    ToggleTodo,
    use_create_todo,
    use_delete_todo,
    use_todos,
    use_toggle_todo,
)
from perch.plugins.todos.localization import TODOS_LOCALIZATION
from perch.plugins.todos.overrides import TodosPluginOverrides
from perch.plugins.todos.schema import todos_schema
from perch.plugins.todos.types import Todo, TodoCreate, TodoUpdate

__all__ = [
    "TODOS_LOCALIZATION",
    "TODOS_QUERY_KEY",
    "Todo",
    "TodoCreate",
    "TodoUpdate",
    "TodosPluginOverrides",
    "ToggleTodo",
    "create_add_todo_meta",
    "create_todos_meta",
    "todos_backend_plugin",
    "todos_client_plugin",
    "todos_loader",
    "todos_routes",
    "todos_schema",
    "use_create_todo",
    "use_delete_todo",
    "use_todos",
    "use_toggle_todo",
]
