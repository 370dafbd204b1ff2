"""Mutations with optimistic cache writes.

A ``Mutation`` runs one network operation with lifecycle callbacks::

    on_mutate(variables)                      -> context
    mutation_fn(variables)                    -> result
    on_success(result, variables, context)
    on_error(error, variables, context)
    on_settled(result, error, variables, context)

``optimistic_mutation()`` wires those callbacks into the cache protocol:
cancel in-flight fetches, snapshot, apply the transform, call the
network, restore the snapshot on failure, and invalidate on settle.
Snapshot happens before the optimistic write, which happens before the
network call, which happens before settle.

Callbacks fire regardless of whether whoever started the mutation still
cares about it; guard side effects such as navigation accordingly.

Two mutations on the same item are not ordered against each other: each
restores its own snapshot and the last one to settle wins. Callers that
need strict ordering serialize them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from perch._internal.invoke import invoke
from perch.client.cache import QueryClient, QueryKey

logger = logging.getLogger("perch.client")

type MutationStatus = Literal["idle", "pending", "success", "error"]
type Transform = Callable[[Any, Any, dict[str, Any]], Any]


@dataclass(frozen=True, slots=True)
class MutationContext:
    """What ``on_mutate`` captured: the key, its prior data, the variables.

    ``meta`` carries anything else a hook needs at settle time, such as
    the provisional id of an optimistically created item.
    """

    key: QueryKey
    previous: Any
    variables: Any
    meta: dict[str, Any] = field(default_factory=dict)


class Mutation:
    """One mutation operation and its status.

    ``mutate_async()`` re-raises the failure after the error callbacks ran;
    ``mutate()`` routes it to the per-call ``on_error`` instead and never
    raises.
    """

    __slots__ = (
        "_data",
        "_error",
        "_status",
        "client",
        "mutation_fn",
        "on_error",
        "on_mutate",
        "on_settled",
        "on_success",
    )

    def __init__(
        self,
        client: QueryClient,
        mutation_fn: Callable[[Any], Any],
        *,
        on_mutate: Callable[..., Any] | None = None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
        on_settled: Callable[..., Any] | None = None,
    ) -> None:
        self.client = client
        self.mutation_fn = mutation_fn
        self.on_mutate = on_mutate
        self.on_success = on_success
        self.on_error = on_error
        self.on_settled = on_settled
        self._status: MutationStatus = "idle"
        self._error: BaseException | None = None
        self._data: Any = None

    @property
    def status(self) -> MutationStatus:
        return self._status

    @property
    def is_pending(self) -> bool:
        return self._status == "pending"

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def data(self) -> Any:
        return self._data

    def reset(self) -> None:
        self._status = "idle"
        self._error = None
        self._data = None

    async def mutate_async(self, variables: Any) -> Any:
        """Run the mutation and return its result.

        ``on_settled`` runs after the success or error callback even when
        that callback raises.
        """
        self._status = "pending"
        self._error = None
        context = None
        try:
            if self.on_mutate is not None:
                context = await invoke(self.on_mutate, variables)
            result = await invoke(self.mutation_fn, variables)
        except Exception as exc:
            self._status = "error"
            self._error = exc
            try:
                if self.on_error is not None:
                    await invoke(self.on_error, exc, variables, context)
            finally:
                await self._settle(None, exc, variables, context)
            raise

        self._status = "success"
        self._data = result
        try:
            if self.on_success is not None:
                await invoke(self.on_success, result, variables, context)
        finally:
            await self._settle(result, None, variables, context)
        return result

    async def _settle(
        self, result: Any, error: BaseException | None, variables: Any, context: Any
    ) -> None:
        if self.on_settled is not None:
            await invoke(self.on_settled, result, error, variables, context)

    async def mutate(
        self,
        variables: Any,
        *,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        """Fire-and-report variant: failures go to *on_error*, never raise."""
        try:
            result = await self.mutate_async(variables)
        except Exception as exc:
            logger.debug("Mutation failed", exc_info=True)
            if on_error is not None:
                await invoke(on_error, exc, variables)
            return
        if on_success is not None:
            await invoke(on_success, result, variables)


def optimistic_mutation(
    client: QueryClient,
    key: QueryKey,
    mutation_fn: Callable[[Any], Any],
    transform: Transform,
    *,
    prepare: Callable[[Any], dict[str, Any]] | None = None,
    on_success: Callable[..., Any] | None = None,
    on_error: Callable[..., Any] | None = None,
) -> Mutation:
    """Build a ``Mutation`` that applies *transform* to the cache first.

    *prepare* computes ``MutationContext.meta`` from the variables before
    the transform runs; the transform receives ``(current, variables,
    meta)``. On failure the snapshot is written back unchanged; on settle
    the key is invalidated so the next read converges on server truth.
    """

    def on_mutate(variables: Any) -> MutationContext:
        client.cancel_queries(key)
        previous = client.get_query_data(key)
        meta = prepare(variables) if prepare is not None else {}
        client.set_query_data(key, lambda current: transform(current, variables, meta))
        return MutationContext(key=key, previous=previous, variables=variables, meta=meta)

    async def rollback(
        error: BaseException, variables: Any, context: MutationContext | None
    ) -> None:
        if context is not None:
            logger.debug("Rolling back %r after %s", key, type(error).__name__)
            client.set_query_data(key, context.previous)
        if on_error is not None:
            await invoke(on_error, error, variables, context)

    def on_settled(*_: Any) -> None:
        client.invalidate_queries(key)

    return Mutation(
        client,
        mutation_fn,
        on_mutate=on_mutate,
        on_success=on_success,
        on_error=rollback,
        on_settled=on_settled,
    )
