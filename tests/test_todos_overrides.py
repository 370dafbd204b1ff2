"""Tests for todos overrides, localization and the route lifecycle."""

import pytest

from perch.client.routes import RouteContext
from perch.plugins.todos.lifecycle import RouteLifecycle
from perch.plugins.todos.localization import TODOS_LOCALIZATION, resolve_localization
from perch.plugins.todos.overrides import TodosPluginOverrides, default_link, resolve_overrides


class TestLocalization:
    def test_defaults(self) -> None:
        assert TODOS_LOCALIZATION["TODOS_ADD_SUCCESS"] == "Todo has been added"
        assert TODOS_LOCALIZATION["TODOS_NOT_FOUND_BACK"] == "Go back to Todos"

    def test_defaults_are_read_only(self) -> None:
        with pytest.raises(TypeError):
            TODOS_LOCALIZATION["TODOS_LIST_TITLE"] = "x"  # type: ignore[index]

    def test_partial_override(self) -> None:
        merged = resolve_localization({"TODOS_LIST_TITLE": "Tasks", "NOPE": "x"})
        assert merged["TODOS_LIST_TITLE"] == "Tasks"
        assert merged["TODOS_DELETE"] == "Delete"
        assert "NOPE" not in merged
        assert TODOS_LOCALIZATION["TODOS_LIST_TITLE"] == "Todos"


class TestOverrides:
    def test_default_link_escapes(self) -> None:
        html = default_link("/todos?a=1&b=2", "<Back>", **{"data-test-id": "x"})
        assert html == '<a href="/todos?a=1&amp;b=2" data-test-id="x">&lt;Back&gt;</a>'

    def test_resolve(self) -> None:
        custom = TodosPluginOverrides(navigate=print)
        assert resolve_overrides(custom) is custom
        assert resolve_overrides(None) == TodosPluginOverrides()

    def test_wrong_type(self) -> None:
        with pytest.raises(TypeError, match="TodosPluginOverrides"):
            resolve_overrides({"navigate": print})


class TestRouteLifecycle:
    async def test_hook_runs_once(self) -> None:
        calls = []
        lifecycle = RouteLifecycle("todos_list", RouteContext("/todos"), calls.append)
        assert await lifecycle.before_render() is True
        assert await lifecycle.before_render() is True
        assert len(calls) == 1
        assert lifecycle.called

    async def test_false_blocks_every_time(self) -> None:
        lifecycle = RouteLifecycle("add_todo", RouteContext("/todos/add"), lambda ctx: False)
        assert await lifecycle.before_render() is False
        assert await lifecycle.before_render() is False

    async def test_async_hook_error_allows_render(self) -> None:
        async def broken(ctx: RouteContext) -> None:
            raise RuntimeError("bug")

        lifecycle = RouteLifecycle("todos_list", RouteContext("/todos"), broken)
        assert await lifecycle.before_render() is True

    async def test_no_hook(self) -> None:
        lifecycle = RouteLifecycle("todos_list", RouteContext("/todos"))
        assert await lifecycle.before_render() is True
        assert not lifecycle.called
