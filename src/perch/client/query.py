"""Three-state query reads.

A page never sees a half-populated list: a query is either ``loading``
(nothing usable yet), ``ready`` (data present, possibly empty) or
``error``. Loading is distinct from empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from perch.client.cache import QueryClient, QueryFn, QueryKey, QueryState

type ResultStatus = Literal["loading", "ready", "error"]


@dataclass(frozen=True, slots=True)
class QueryResult[T]:
    status: ResultStatus
    data: T | None = None
    error: BaseException | None = None

    @property
    def is_loading(self) -> bool:
        return self.status == "loading"

    @property
    def is_ready(self) -> bool:
        return self.status == "ready"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    def unwrap(self) -> T:
        """Return the data, raising the recorded error or ``LookupError``."""
        if self.error is not None:
            raise self.error
        if self.status != "ready":
            msg = "Query has no data yet"
            raise LookupError(msg)
        return self.data  # type: ignore[return-value]

    @classmethod
    def from_state(cls, state: QueryState | None) -> QueryResult[Any]:
        if state is None or state.status == "pending":
            return cls(status="loading")
        if state.status == "error" and state.data is None:
            return cls(status="error", error=state.error)
        return cls(status="ready", data=state.data)


def read_query(client: QueryClient, key: QueryKey) -> QueryResult[Any]:
    """Snapshot of *key* without fetching."""
    return QueryResult.from_state(client.get_query_state(key))


async def use_query(
    client: QueryClient,
    key: QueryKey,
    fn: QueryFn,
    *,
    stale_time: float | None = None,
) -> QueryResult[Any]:
    """Read *key*, fetching when the cached entry is stale.

    Unless the client refetches on mount, existing data that has not been
    invalidated is served as-is, so hydrated server state does not trigger
    a second request.
    """
    state = client.get_query_state(key)
    if (
        state is not None
        and state.status == "success"
        and not state.is_invalidated
        and not client.config.refetch_on_mount
    ):
        return QueryResult(status="ready", data=state.data)
    try:
        data = await client.fetch_query(key, fn, stale_time=stale_time)
    except Exception as exc:
        return QueryResult(status="error", error=exc)
    return QueryResult(status="ready", data=data)
