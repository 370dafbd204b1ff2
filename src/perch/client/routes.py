"""Route descriptors, metadata elements and sitemap entries.

A client plugin describes each addressable page once, at construction::

    RouteDescriptor(
        name="todos_list",
        path="/todos",
        page=todos_list_page,
        loader=todos_loader(config),
        meta=lambda: create_todos_meta(config, "/todos"),
        sitemap=SitemapContribution(priority=0.7),
    )

Descriptors are frozen; the composer (``perch.client.stack``) aggregates
them across plugins and resolves request paths against them.
"""

from __future__ import annotations

import html
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

type ChangeFrequency = Literal["always", "hourly", "daily", "weekly", "monthly", "yearly", "never"]


@dataclass(frozen=True, slots=True)
class RouteContext:
    """What a page sees while rendering.

    ``overrides`` is the plugin's override set as registered on the stack
    at render time (``None`` when the host registered none).
    """

    path: str
    params: Mapping[str, str] = field(default_factory=dict)
    is_ssr: bool = True
    overrides: Any = None


type Page = Callable[[RouteContext], str | Awaitable[str]]
type LoadingPage = Callable[[RouteContext], str]
type ErrorPage = Callable[[RouteContext, BaseException], str]
type Loader = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class MetaElement:
    """One document metadata entry.

    ``attribute`` says whether ``key`` goes in the tag's ``name`` or
    ``property`` attribute (Open Graph uses ``property``). The ``title``
    key renders as the ``<title>`` element.
    """

    key: str
    content: str
    attribute: Literal["name", "property"] = "name"

    def render(self) -> str:
        content = html.escape(self.content)
        if self.key == "title":
            return f"<title>{content}</title>"
        return f'<meta {self.attribute}="{html.escape(self.key)}" content="{content}">'


def meta_elements_to_object(elements: Iterable[MetaElement]) -> dict[str, Any]:
    """Fold metadata elements into one nested mapping.

    ``og:*`` properties collect under ``"open_graph"`` and ``twitter:*``
    names under ``"twitter"``; anything unrecognised lands in ``"other"``::

        {"title": "3 Todos", "description": "...", "keywords": [...],
         "open_graph": {"title": ..., "type": "website", ...},
         "twitter": {"card": "summary", ...}}
    """
    result: dict[str, Any] = {}
    for el in elements:
        key = el.key
        if key in ("title", "description"):
            result[key] = el.content
        elif key == "keywords":
            result["keywords"] = [k.strip() for k in el.content.split(",") if k.strip()]
        elif key.startswith("og:"):
            result.setdefault("open_graph", {})[key[3:]] = el.content
        elif key.startswith("twitter:"):
            result.setdefault("twitter", {})[key[8:]] = el.content
        else:
            result.setdefault("other", {})[key] = el.content
    return result


@dataclass(frozen=True, slots=True)
class SitemapContribution:
    """A descriptor's claim to a sitemap entry."""

    priority: float
    change_frequency: ChangeFrequency | None = None


@dataclass(frozen=True, slots=True)
class SitemapEntry:
    """One sitemap URL, stamped when the sitemap was generated."""

    url: str
    last_modified: datetime
    priority: float
    change_frequency: ChangeFrequency | None = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "lastModified": self.last_modified.isoformat(),
            "priority": self.priority,
        }
        if self.change_frequency is not None:
            data["changeFrequency"] = self.change_frequency
        return data


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    """One page of a client plugin.

    ``meta`` must be a pure read of cache state: no network access, and
    an absent entry counts as empty. ``on_error`` observes failures caught
    by the render boundary.
    """

    name: str
    path: str
    page: Page
    loader: Loader | None = None
    meta: Callable[[], list[MetaElement]] | None = None
    sitemap: SitemapContribution | None = None
    loading: LoadingPage | None = None
    error: ErrorPage | None = None
    on_error: Callable[[RouteContext, BaseException], Any] | None = None
