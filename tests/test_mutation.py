"""Tests for perch.client.query and perch.client.mutation."""

import anyio
import pytest

from perch.client.cache import QueryClient, QueryClientConfig
from perch.client.mutation import Mutation, MutationContext, optimistic_mutation
from perch.client.query import QueryResult, read_query, use_query

KEY = ("items",)


class TestQueryResult:
    def test_states(self) -> None:
        assert read_query(QueryClient(), KEY).is_loading

        client = QueryClient()
        client.set_query_data(KEY, ())
        result = read_query(client, KEY)
        assert result.is_ready
        assert result.unwrap() == ()

    def test_unwrap_loading(self) -> None:
        with pytest.raises(LookupError):
            QueryResult(status="loading").unwrap()

    def test_unwrap_error(self) -> None:
        with pytest.raises(ValueError, match="bad"):
            QueryResult(status="error", error=ValueError("bad")).unwrap()


class TestUseQuery:
    async def test_fetches_when_absent(self) -> None:
        async def fetch():
            return ("a",)

        result = await use_query(QueryClient(), KEY, fetch)
        assert result.is_ready
        assert result.data == ("a",)

    async def test_existing_data_is_not_refetched(self) -> None:
        client = QueryClient()
        client.set_query_data(KEY, ("hydrated",))
        calls = []

        async def fetch():
            calls.append(1)
            return ("fresh",)

        result = await use_query(client, KEY, fetch)
        assert result.data == ("hydrated",)
        assert calls == []

    async def test_refetch_on_mount(self) -> None:
        client = QueryClient(QueryClientConfig(refetch_on_mount=True))
        client.set_query_data(KEY, ("hydrated",))

        async def fetch():
            return ("fresh",)

        assert (await use_query(client, KEY, fetch)).data == ("fresh",)

    async def test_failure_is_an_error_result(self) -> None:
        async def fetch():
            raise RuntimeError("down")

        result = await use_query(QueryClient(), KEY, fetch)
        assert result.is_error
        assert str(result.error) == "down"


class TestMutation:
    async def test_lifecycle_order(self) -> None:
        order: list[str] = []

        async def run(variables):
            order.append("network")
            return variables * 2

        mutation = Mutation(
            QueryClient(),
            run,
            on_mutate=lambda v: order.append("mutate"),
            on_success=lambda result, v, ctx: order.append(f"success:{result}"),
            on_settled=lambda result, error, v, ctx: order.append("settled"),
        )
        assert await mutation.mutate_async(21) == 42
        assert order == ["mutate", "network", "success:42", "settled"]
        assert mutation.status == "success"
        assert mutation.data == 42

    async def test_mutate_async_reraises(self) -> None:
        async def run(variables):
            raise RuntimeError("nope")

        errors = []
        mutation = Mutation(QueryClient(), run, on_error=lambda e, v, ctx: errors.append(e))
        with pytest.raises(RuntimeError):
            await mutation.mutate_async(1)
        assert mutation.status == "error"
        assert len(errors) == 1

    async def test_mutate_never_raises(self) -> None:
        async def run(variables):
            raise RuntimeError("nope")

        seen = []
        mutation = Mutation(QueryClient(), run)
        await mutation.mutate(1, on_error=lambda error, variables: seen.append(variables))
        assert seen == [1]
        assert isinstance(mutation.error, RuntimeError)

    async def test_reset(self) -> None:
        mutation = Mutation(QueryClient(), lambda v: v)
        await mutation.mutate_async("x")
        mutation.reset()
        assert mutation.status == "idle"
        assert mutation.data is None


class TestOptimisticMutation:
    async def test_write_happens_before_network(self) -> None:
        client = QueryClient()
        client.set_query_data(KEY, ("a",))
        seen_during_network = []

        async def run(variables):
            seen_during_network.append(client.get_query_data(KEY))
            return variables

        mutation = optimistic_mutation(
            client, KEY, run, lambda current, v, meta: (*current, v) if current else None
        )
        await mutation.mutate_async("b")
        assert seen_during_network == [("a", "b")]
        assert client.get_query_state(KEY).is_invalidated

    async def test_rollback_restores_snapshot(self) -> None:
        client = QueryClient()
        snapshot = ("a", "b")
        client.set_query_data(KEY, snapshot)
        contexts: list[MutationContext] = []

        async def run(variables):
            raise RuntimeError("offline")

        mutation = optimistic_mutation(
            client,
            KEY,
            run,
            lambda current, v, meta: current[:1],
            on_error=lambda error, v, ctx: contexts.append(ctx),
        )
        await mutation.mutate("x")
        assert client.get_query_data(KEY) is snapshot
        assert contexts[0].previous is snapshot
        assert contexts[0].variables == "x"

    async def test_prepare_meta_reaches_transform(self) -> None:
        client = QueryClient()
        client.set_query_data(KEY, ())

        mutation = optimistic_mutation(
            client,
            KEY,
            lambda v: v,
            lambda current, v, meta: (meta["tag"],),
            prepare=lambda v: {"tag": f"tmp-{v}"},
        )
        await mutation.mutate_async("1")
        assert client.get_query_data(KEY) == ("tmp-1",)

    async def test_raising_success_callback_still_settles(self) -> None:
        client = QueryClient()
        client.set_query_data(KEY, ("a",))

        def boom(*args) -> None:
            raise RuntimeError("callback bug")

        mutation = optimistic_mutation(
            client, KEY, lambda v: v, lambda current, v, meta: (*current, v), on_success=boom
        )
        with pytest.raises(RuntimeError, match="callback bug"):
            await mutation.mutate_async("b")
        assert client.get_query_state(KEY).is_invalidated

    async def test_raising_error_callback_still_rolls_back_and_settles(self) -> None:
        client = QueryClient()
        snapshot = ("a",)
        client.set_query_data(KEY, snapshot)

        async def run(variables):
            raise RuntimeError("offline")

        def boom(*args) -> None:
            raise ValueError("callback bug")

        mutation = optimistic_mutation(
            client, KEY, run, lambda current, v, meta: (*current, v), on_error=boom
        )
        with pytest.raises(ValueError, match="callback bug"):
            await mutation.mutate_async("b")
        state = client.get_query_state(KEY)
        assert state.data is snapshot
        assert state.is_invalidated


def _toggle(current, item_id, meta):
    return tuple((i, not done) if i == item_id else (i, done) for i, done in current)


class TestConcurrentMutations:
    async def test_each_mutation_rolls_back_to_its_own_snapshot(self) -> None:
        client = QueryClient()
        client.set_query_data(KEY, (("1", False), ("2", False)))
        started = anyio.Event()
        release = anyio.Event()

        async def slow_success(item_id):
            started.set()
            await release.wait()
            return item_id

        async def offline(item_id):
            raise RuntimeError("offline")

        first = optimistic_mutation(client, KEY, slow_success, _toggle)
        second = optimistic_mutation(client, KEY, offline, _toggle)

        async with anyio.create_task_group() as tg:
            tg.start_soon(first.mutate, "1")
            await started.wait()
            assert client.get_query_data(KEY) == (("1", True), ("2", False))

            await second.mutate("2")
            # The second snapshot already held the first optimistic write.
            assert client.get_query_data(KEY) == (("1", True), ("2", False))
            release.set()

        assert first.status == "success"
        assert second.status == "error"
        state = client.get_query_state(KEY)
        assert state.data == (("1", True), ("2", False))
        assert state.is_invalidated
