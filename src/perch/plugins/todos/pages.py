"""Todos pages.

Each page reads the plugin's override set from the render context, runs
its before-render hook once, and renders a kida template with the merged
localization. Page objects also carry the user actions the page offers
(toggle, delete, submit) so hosts can wire them to their own events.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any

from kida import Environment, PackageLoader
from kida.template import Markup

from perch._internal.invoke import invoke
from perch.client.routes import RouteContext
from perch.errors import HTTPError
from perch.plugins.todos.hooks import (
    ToggleTodo,
    use_create_todo,
    use_delete_todo,
    use_todos,
    use_toggle_todo,
)
from perch.plugins.todos.lifecycle import RouteLifecycle
from perch.plugins.todos.localization import resolve_localization
from perch.plugins.todos.overrides import (
    NotifyLevel,
    TodosPluginOverrides,
    TodosRouteName,
    resolve_overrides,
)
from perch.plugins.todos.types import Todo, TodoCreate
from perch.routing.paths import join_path

if TYPE_CHECKING:
    from collections.abc import Callable

    from perch.config import ClientConfig

logger = logging.getLogger("perch.todos")


@functools.cache
def template_environment() -> Environment:
    """The kida environment for the plugin's packaged templates."""
    return Environment(loader=PackageLoader("perch.plugins.todos", "templates"), autoescape=True)


def render_template(name: str, **context: Any) -> str:
    return template_environment().get_template(name).render(context)


def _link(overrides: TodosPluginOverrides, href: str, label: str, test_id: str) -> Markup:
    return Markup(overrides.link(href, label, **{"data-test-id": test_id}))


async def _notify(overrides: TodosPluginOverrides, level: NotifyLevel, message: str) -> None:
    if overrides.notify is None:
        return
    try:
        await invoke(overrides.notify, level, message)
    except Exception:
        logger.exception("Notification handler failed")


# -- Fallbacks --


def todos_list_loading(ctx: RouteContext) -> str:
    return render_template("list_loading.html")


def form_loading(ctx: RouteContext) -> str:
    return render_template("form_loading.html")


def todos_error(config: ClientConfig) -> Callable[[RouteContext, BaseException], str]:
    """Error fallback for todos routes. A 404 renders the not-found page."""

    def render(ctx: RouteContext, error: BaseException) -> str:
        overrides = resolve_overrides(ctx.overrides)
        loc = resolve_localization(overrides.localization)
        if isinstance(error, HTTPError) and error.status == 404:
            back = _link(
                overrides,
                join_path(config.site_base_path, "/todos"),
                loc["TODOS_NOT_FOUND_BACK"],
                "add-todo-not-found-back",
            )
            return render_template("not_found.html", loc=loc, back_link=back)
        message = str(error) or "An unexpected error occurred"
        return render_template("error.html", loc=loc, message=message)

    return render


def report_route_error(route_name: TodosRouteName) -> Callable[[RouteContext, BaseException], Any]:
    """Forward render failures to the host's ``on_route_error``."""

    async def on_error(ctx: RouteContext, error: BaseException) -> None:
        overrides = resolve_overrides(ctx.overrides)
        if overrides.on_route_error is not None:
            await invoke(
                overrides.on_route_error,
                route_name,
                error,
                {"path": ctx.path, "is_ssr": ctx.is_ssr},
            )

    return on_error


# -- Pages --


class TodosListPage:
    """The todo list, with toggle and delete actions."""

    __slots__ = ("config",)

    def __init__(self, config: ClientConfig) -> None:
        self.config = config

    async def __call__(self, ctx: RouteContext) -> str:
        overrides = resolve_overrides(ctx.overrides)
        lifecycle = RouteLifecycle(
            "todos_list", ctx, overrides.on_before_todos_list_page_rendered
        )
        if not await lifecycle.before_render():
            return ""

        loc = resolve_localization(overrides.localization)
        todos = (await use_todos(self.config)).unwrap()
        add_href = join_path(self.config.site_base_path, "/todos/add")
        return render_template(
            "todos_list.html",
            loc=loc,
            todos=todos,
            add_button=_link(overrides, add_href, loc["TODOS_ADD_BUTTON"], "todos-add-link"),
            add_link=_link(overrides, add_href, loc["TODOS_ADD_LINK"], "todos-add-link"),
        )

    async def toggle(
        self, todo: Todo, overrides: TodosPluginOverrides | None = None
    ) -> None:
        """Flip *todo*'s completion flag and notify the outcome."""
        overrides = resolve_overrides(overrides)
        loc = resolve_localization(overrides.localization)
        mutation = use_toggle_todo(self.config)
        await mutation.mutate(
            ToggleTodo(id=todo.id, completed=not todo.completed),
            on_success=lambda *_: _notify(overrides, "success", loc["TODOS_TOGGLE_SUCCESS"]),
            on_error=lambda *_: _notify(overrides, "error", loc["TODOS_TOGGLE_ERROR"]),
        )

    async def delete(
        self, todo_id: str, overrides: TodosPluginOverrides | None = None
    ) -> None:
        overrides = resolve_overrides(overrides)
        loc = resolve_localization(overrides.localization)
        mutation = use_delete_todo(self.config)
        await mutation.mutate(
            todo_id,
            on_success=lambda *_: _notify(overrides, "success", loc["TODOS_DELETE_SUCCESS"]),
            on_error=lambda *_: _notify(overrides, "error", loc["TODOS_DELETE_ERROR"]),
        )


class AddTodoPage:
    """The add form. ``submit()`` creates the todo and returns to the list."""

    __slots__ = ("config", "mutation")

    def __init__(self, config: ClientConfig) -> None:
        self.config = config
        self.mutation = use_create_todo(config)

    async def __call__(self, ctx: RouteContext) -> str:
        overrides = resolve_overrides(ctx.overrides)
        lifecycle = RouteLifecycle("add_todo", ctx, overrides.on_before_add_todo_page_rendered)
        if not await lifecycle.before_render():
            return ""

        loc = resolve_localization(overrides.localization)
        cancel = _link(
            overrides,
            join_path(self.config.site_base_path, "/todos"),
            loc["TODOS_FORM_CANCEL"],
            "add-todo-cancel",
        )
        return render_template(
            "add_todo.html", loc=loc, saving=self.mutation.is_pending, cancel_link=cancel
        )

    async def submit(
        self, title: str, overrides: TodosPluginOverrides | None = None
    ) -> Todo | None:
        """Create a todo titled *title*.

        On success the host is notified and navigated to the list; on
        failure it is notified of the error and ``None`` is returned.
        """
        overrides = resolve_overrides(overrides)
        loc = resolve_localization(overrides.localization)
        try:
            todo = await self.mutation.mutate_async(TodoCreate(title=title))
        except Exception:
            logger.warning("Adding todo failed", exc_info=True)
            await _notify(overrides, "error", loc["TODOS_ADD_ERROR"])
            return None

        await _notify(overrides, "success", loc["TODOS_ADD_SUCCESS"])
        if overrides.navigate is not None:
            await invoke(overrides.navigate, join_path(self.config.site_base_path, "/todos"))
        return todo


def todos_list_page(config: ClientConfig) -> TodosListPage:
    return TodosListPage(config)


def add_todo_page(config: ClientConfig) -> AddTodoPage:
    return AddTodoPage(config)
