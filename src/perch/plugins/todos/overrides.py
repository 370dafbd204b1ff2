"""Host customization points for the todos plugin.

The host registers one ``TodosPluginOverrides`` on its ``StackClient``
under the plugin name and may swap it at any time; pages read it on every
render and never modify it.
"""

from __future__ import annotations

import html
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from perch.client.routes import RouteContext

type TodosRouteName = Literal["todos_list", "add_todo"]
type NotifyLevel = Literal["success", "error"]
type BeforeRenderHook = Callable[[RouteContext], bool | None | Awaitable[bool | None]]


def default_link(href: str, label: str, **attrs: str) -> str:
    """A plain anchor tag."""
    extra = "".join(f' {name}="{html.escape(value)}"' for name, value in attrs.items())
    return f'<a href="{html.escape(href)}"{extra}>{html.escape(label)}</a>'


@dataclass(frozen=True, slots=True)
class TodosPluginOverrides:
    """Everything the host can customize.

    ``link`` renders a navigation link as HTML. ``navigate`` performs
    programmatic navigation after actions. ``notify`` receives user
    feedback messages (``"success"`` or ``"error"``). A ``before render``
    hook returning ``False`` prevents its page from rendering.
    """

    link: Callable[..., str] = default_link
    navigate: Callable[[str], Any] | None = None
    notify: Callable[[NotifyLevel, str], Any] | None = None
    localization: Mapping[str, str] = field(default_factory=dict)
    on_route_error: (
        Callable[[TodosRouteName, BaseException, dict[str, Any]], Any] | None
    ) = None
    on_before_todos_list_page_rendered: BeforeRenderHook | None = None
    on_before_add_todo_page_rendered: BeforeRenderHook | None = None


def resolve_overrides(value: Any) -> TodosPluginOverrides:
    """The registered override set, or the defaults when none is registered."""
    if isinstance(value, TodosPluginOverrides):
        return value
    if value is None:
        return TodosPluginOverrides()
    msg = f"Expected TodosPluginOverrides, got {type(value).__name__}"
    raise TypeError(msg)
