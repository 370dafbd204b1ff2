"""Session-scoped query cache.

One ``QueryClient`` per client session (and one per request during
server-side rendering). Entries are keyed by tuples such as ``("todos",)``
and hold immutable values: collections are tuples of frozen dataclasses,
so a reader can never alias a writer's state. Every write replaces the
entry with a new ``QueryState``.

Fetch cancellation is cooperative: ``cancel_queries()`` bumps a
generation counter for the matching keys, and any fetch that started
under an older generation drops its result instead of writing it. The
optimistic mutation protocol relies on this so a slow list fetch cannot
overwrite an optimistic write.

Free-threading safety:
    - QueryState is a frozen dataclass (immutable, safe to share)
    - QueryClient guards its entry and listener tables with a Lock
    - Listeners are called outside the lock
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Literal

from perch._internal.invoke import invoke
from perch.context import is_server
from perch.errors import PerchError, TransientFetchError
from perch.http.encoding import to_jsonable

logger = logging.getLogger("perch.client")

SERVER_STALE_TIME = 60.0

type QueryKey = tuple[Hashable, ...]
type QueryStatus = Literal["pending", "success", "error"]
type QueryFn = Callable[[], Awaitable[Any]]
type Updater = Callable[[Any], Any]
type Decoder = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class QueryClientConfig:
    """Defaults applied to every query of a client.

    ``stale_time`` is in seconds; ``0`` means data is stale as soon as it
    is written. ``retry`` is how many extra attempts a fetch gets after a
    ``TransientFetchError``. With ``refetch_on_mount`` off, a page read
    serves existing data instead of refetching it.
    """

    stale_time: float = 0.0
    retry: int = 0
    refetch_on_mount: bool = False


@dataclass(frozen=True, slots=True)
class QueryState:
    """The cached state of one query key."""

    data: Any = None
    data_updated_at: float = 0.0
    error: BaseException | None = None
    status: QueryStatus = "pending"
    is_invalidated: bool = False
    version: int = 0

    def is_stale(self, stale_time: float, now: float) -> bool:
        if self.status != "success" or self.is_invalidated:
            return True
        return now - self.data_updated_at >= stale_time


@dataclass(frozen=True, slots=True)
class QueryEvent:
    """Delivered to listeners after an entry changes."""

    type: Literal["updated", "invalidated", "removed"]
    key: QueryKey
    state: QueryState | None


def matches_key(key: QueryKey, prefix: QueryKey) -> bool:
    """True when *prefix* is a leading slice of *key* (``()`` matches all)."""
    return key[: len(prefix)] == prefix


class QueryClient:
    """Keyed cache of query results with change notification.

    Usage::

        client = QueryClient(QueryClientConfig(stale_time=60))
        await client.prefetch_query(("todos",), fetch_todos)
        todos = client.get_query_data(("todos",))
    """

    __slots__ = ("_clock", "_generations", "_listeners", "_lock", "_states", "config")

    def __init__(
        self,
        config: QueryClientConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config: QueryClientConfig = config or QueryClientConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[QueryKey, QueryState] = {}
        self._generations: dict[QueryKey, int] = {}
        self._listeners: list[Callable[[QueryEvent], Any]] = []

    # -- Reads --

    def get_query_data(self, key: QueryKey) -> Any:
        """The cached data for *key*, or ``None`` when absent."""
        state = self._states.get(key)
        return state.data if state is not None else None

    def get_query_state(self, key: QueryKey) -> QueryState | None:
        return self._states.get(key)

    def keys(self) -> list[QueryKey]:
        with self._lock:
            return list(self._states)

    # -- Writes --

    def set_query_data(self, key: QueryKey, value: Any) -> Any:
        """Replace the data for *key*.

        *value* may be an updater ``(current) -> new``; ``current`` is
        ``None`` when the entry is absent. A result of ``None`` leaves the
        entry untouched. Returns the data that was written, or ``None``.
        """

        def build(previous: QueryState | None) -> QueryState | None:
            current = previous.data if previous is not None else None
            new = value(current) if callable(value) else value
            if new is None:
                return None
            return QueryState(data=new, data_updated_at=self._clock(), status="success")

        state = self._install(key, build)
        return state.data if state is not None else None

    def invalidate_queries(self, key: QueryKey = ()) -> list[QueryKey]:
        """Mark every entry under *key* stale; the next fetch refetches."""
        events: list[QueryEvent] = []
        with self._lock:
            for k, state in list(self._states.items()):
                if matches_key(k, key):
                    updated = replace(state, is_invalidated=True)
                    self._states[k] = updated
                    events.append(QueryEvent("invalidated", k, updated))
        for event in events:
            self._notify(event)
        return [event.key for event in events]

    def remove_queries(self, key: QueryKey = ()) -> None:
        """Drop every entry under *key* and cancel their in-flight fetches."""
        self.cancel_queries(key)
        with self._lock:
            removed = [k for k in self._states if matches_key(k, key)]
            for k in removed:
                del self._states[k]
        for k in removed:
            self._notify(QueryEvent("removed", k, None))

    def cancel_queries(self, key: QueryKey = ()) -> None:
        """Stop in-flight fetches under *key* from writing their results."""
        with self._lock:
            for k in {*self._states, *self._generations}:
                if matches_key(k, key):
                    self._generations[k] = self._generations.get(k, 0) + 1
            if key not in self._generations:
                self._generations[key] = 1

    def clear(self) -> None:
        self.remove_queries(())

    # -- Fetching --

    async def fetch_query(
        self,
        key: QueryKey,
        fn: QueryFn,
        *,
        stale_time: float | None = None,
    ) -> Any:
        """Return fresh data for *key*, calling *fn* only when stale.

        Errors are recorded on the entry and re-raised. A fetch cancelled
        while in flight returns its data without writing it.
        """
        stale = self.config.stale_time if stale_time is None else stale_time
        state = self._states.get(key)
        if state is not None and not state.is_stale(stale, self._clock()):
            return state.data

        generation = self._generation(key)
        try:
            data = await self._run_with_retry(fn)
        except Exception as exc:
            if self._generation(key) == generation:
                self._record_error(key, exc)
            raise

        if self._generation(key) != generation:
            logger.debug("Dropping cancelled fetch for %r", key)
            return data
        self.set_query_data(key, lambda _: data)
        return data

    async def prefetch_query(
        self,
        key: QueryKey,
        fn: QueryFn,
        *,
        stale_time: float | None = None,
    ) -> None:
        """Like ``fetch_query`` but never raises."""
        try:
            await self.fetch_query(key, fn, stale_time=stale_time)
        except Exception:
            logger.debug("Prefetch failed for %r", key, exc_info=True)

    async def ensure_query_data(self, key: QueryKey, fn: QueryFn) -> Any:
        """Return cached data if any exists (stale or not), else fetch it."""
        state = self._states.get(key)
        if state is not None and state.status == "success":
            return state.data
        return await self.fetch_query(key, fn)

    async def _run_with_retry(self, fn: QueryFn) -> Any:
        failures = 0
        while True:
            try:
                return await invoke(fn)
            except TransientFetchError:
                failures += 1
                if failures > self.config.retry:
                    raise
                logger.debug("Retrying fetch after transient failure (%d)", failures)

    def _generation(self, key: QueryKey) -> int:
        return self._generations.get(key, 0)

    def _record_error(self, key: QueryKey, exc: Exception) -> None:
        def build(previous: QueryState | None) -> QueryState:
            return QueryState(
                data=previous.data if previous is not None else None,
                data_updated_at=previous.data_updated_at if previous is not None else 0.0,
                error=exc,
                status="error",
            )

        self._install(key, build)

    def _install(
        self, key: QueryKey, build: Callable[[QueryState | None], QueryState | None]
    ) -> QueryState | None:
        """Write ``build(previous)`` under the lock and notify listeners.

        The entry's version is bumped here; ``build`` returning ``None``
        leaves the entry untouched.
        """
        with self._lock:
            previous = self._states.get(key)
            state = build(previous)
            if state is None:
                return None
            state = replace(state, version=previous.version + 1 if previous is not None else 1)
            self._states[key] = state
        self._notify(QueryEvent("updated", key, state))
        return state

    # -- Listeners --

    def subscribe(self, listener: Callable[[QueryEvent], Any]) -> Callable[[], None]:
        """Call *listener* after every change. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: QueryEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Query listener failed for %r", event.key)

    # -- Dehydration --

    def dehydrate(
        self,
        should_dehydrate: Callable[[QueryKey, QueryState], bool] | None = None,
    ) -> dict[str, Any]:
        """Serialize entries for transfer to the client.

        Successful and errored entries are included by default, so a
        failed server prefetch does not turn into a loading state on the
        client. The result is plain JSON: keys become lists, data goes
        through the same encoder as API responses.
        """
        keep = should_dehydrate or _dehydrate_settled
        with self._lock:
            items = list(self._states.items())
        queries = []
        for key, state in items:
            if not keep(key, state):
                continue
            dehydrated: dict[str, Any] = {
                "data": to_jsonable(state.data),
                "dataUpdatedAt": state.data_updated_at,
                "status": state.status,
            }
            if state.error is not None:
                dehydrated["error"] = str(state.error)
            queries.append({"queryKey": list(key), "state": dehydrated})
        return {"queries": queries}


def _dehydrate_settled(key: QueryKey, state: QueryState) -> bool:
    return state.status in ("success", "error")


def hydrate(
    client: QueryClient,
    dehydrated: Mapping[str, Any],
    *,
    decoders: Mapping[QueryKey, Decoder] | None = None,
) -> None:
    """Load dehydrated entries into *client*.

    ``decoders`` maps key prefixes to functions that rebuild typed values
    from the JSON data. Entries already newer on the client are kept.
    """
    decoders = decoders or {}
    for query in dehydrated.get("queries", ()):
        key: QueryKey = tuple(query["queryKey"])
        state = query["state"]
        status = state.get("status")
        if status not in ("success", "error"):
            continue
        existing = client.get_query_state(key)
        updated_at = float(state.get("dataUpdatedAt", 0.0))
        if existing is not None and existing.status == "success" and (
            existing.data_updated_at >= updated_at
        ):
            continue
        data = state.get("data")
        if data is not None:
            for prefix, decode in decoders.items():
                if matches_key(key, prefix):
                    data = decode(data)
                    break
        error = PerchError(state.get("error", "")) if status == "error" else None
        hydrated = QueryState(data=data, data_updated_at=updated_at, error=error, status=status)
        client._install(key, lambda _, state=hydrated: state)


def make_query_client(*, server: bool | None = None) -> QueryClient:
    """A client with the stack's defaults.

    Server-side clients (one per request) treat data as fresh for
    ``SERVER_STALE_TIME`` seconds; browser clients never refetch on mount,
    so hydrated data is served without a second request.
    """
    if server is None:
        server = is_server()
    stale_time = SERVER_STALE_TIME if server else 0.0
    return QueryClient(QueryClientConfig(stale_time=stale_time))
