"""Shared fixtures: an in-memory adapter, a mounted app, client configs."""

import itertools
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from perch.adapter import SortBy, Where
from perch.app import App
from perch.client.cache import QueryClient
from perch.config import ClientConfig, StackConfig
from perch.plugins.todos.backend import todos_backend_plugin

BASE_URL = "https://example.com"


class MemoryAdapter:
    """Dict-backed adapter that records every call it receives."""

    def __init__(self) -> None:
        self.rows: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.find_many_result: Any = ...
        self._ids = itertools.count(1)

    def seed(self, model: str, **data: Any) -> dict[str, Any]:
        row = {"id": str(next(self._ids)), **data}
        self.rows.setdefault(model, []).append(row)
        return row

    def _matching(self, model: str, where: Sequence[Where]) -> list[dict[str, Any]]:
        return [
            row
            for row in self.rows.get(model, [])
            if all(row.get(w.field) == w.value for w in where)
        ]

    async def find_many(
        self,
        model: str,
        *,
        where: Sequence[Where] = (),
        sort_by: SortBy | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]] | None:
        self.calls.append(("find_many", (model, sort_by)))
        if self.find_many_result is not ...:
            return self.find_many_result
        rows = [dict(row) for row in self._matching(model, where)]
        if sort_by is not None:
            rows.sort(key=lambda r: r[sort_by.field], reverse=sort_by.direction == "desc")
        return rows[offset or 0 :][:limit]

    async def create(self, model: str, data: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", (model, dict(data))))
        return dict(self.seed(model, **data))

    async def update(
        self, model: str, where: Sequence[Where], data: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        self.calls.append(("update", (model, list(where), dict(data))))
        matches = self._matching(model, where)
        if not matches:
            return None
        matches[0].update(data)
        return dict(matches[0])

    async def delete(self, model: str, where: Sequence[Where]) -> None:
        self.calls.append(("delete", (model, list(where))))
        self.rows[model] = [
            row for row in self.rows.get(model, []) if row not in self._matching(model, where)
        ]

    def calls_to(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]


def seed_todo(adapter: MemoryAdapter, title: str, *, completed: bool = False, age: int = 0):
    created = datetime(2026, 1, 1, tzinfo=UTC) + timedelta(minutes=age)
    return adapter.seed("todo", title=title, completed=completed, createdAt=created)


@pytest.fixture
def adapter() -> MemoryAdapter:
    return MemoryAdapter()


@pytest.fixture
def app(adapter: MemoryAdapter) -> App:
    app = App(StackConfig(base_path="/api/data"), adapter=adapter)
    app.register_plugin("todos", todos_backend_plugin)
    return app


@pytest.fixture
def query_client() -> QueryClient:
    return QueryClient()


def make_config(
    query_client: QueryClient,
    transport: httpx.AsyncBaseTransport,
    *,
    site_base_path: str = "/app",
) -> ClientConfig:
    return ClientConfig(
        query_client=query_client,
        api_base_url=BASE_URL,
        api_base_path="/api/data",
        site_base_url=BASE_URL,
        site_base_path=site_base_path,
        transport=transport,
    )


@pytest.fixture
def config(app: App, query_client: QueryClient) -> ClientConfig:
    """Client config whose API calls reach ``app`` in-process."""
    return make_config(query_client, httpx.ASGITransport(app=app))


class Recorder:
    """Collects callback invocations."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
