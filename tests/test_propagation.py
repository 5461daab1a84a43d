"""Tests for scope propagation across every continuation-scheduling primitive."""

import asyncio
import os
import sys
import threading

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from correlator.core.propagation import ContinuationPropagator

# Threads inheriting their creator's context (free-threaded builds) hide the gap.
threads_inherit_context = pytest.mark.skipif(
    getattr(sys.flags, "thread_inherit_context", False),
    reason="threads inherit the caller context on this interpreter",
)


@pytest.fixture
def propagator(store):
    return ContinuationPropagator(store)


class TestAsyncioPrimitives:
    """asyncio scheduling points carry the scope on their own."""

    @pytest.mark.anyio
    async def test_create_task(self, store):
        async def read():
            await asyncio.sleep(0)
            return store.get()

        with store.scope("foo"):
            task = asyncio.create_task(read())
        assert store.get() is None
        assert await task == "foo"

    @pytest.mark.anyio
    async def test_ensure_future(self, store):
        async def read():
            await asyncio.sleep(0)
            return store.get()

        with store.scope("foo"):
            task = asyncio.ensure_future(read())
        assert await task == "foo"

    @pytest.mark.anyio
    async def test_call_soon(self, store):
        loop = asyncio.get_running_loop()
        result = loop.create_future()
        with store.scope("foo"):
            loop.call_soon(lambda: result.set_result(store.get()))
        assert await result == "foo"

    @pytest.mark.anyio
    async def test_call_later(self, store):
        loop = asyncio.get_running_loop()
        result = loop.create_future()
        with store.scope("foo"):
            loop.call_later(0.01, lambda: result.set_result(store.get()))
        assert await result == "foo"

    @pytest.mark.anyio
    async def test_call_at(self, store):
        loop = asyncio.get_running_loop()
        result = loop.create_future()
        with store.scope("foo"):
            loop.call_at(loop.time() + 0.01, lambda: result.set_result(store.get()))
        assert await result == "foo"

    @pytest.mark.anyio
    async def test_future_done_callback(self, store):
        """The callback runs in the scope it was registered from, not the resolver's."""
        loop = asyncio.get_running_loop()
        source = loop.create_future()
        result = loop.create_future()
        with store.scope("foo"):
            source.add_done_callback(lambda f: result.set_result(store.get()))
        with store.scope("bar"):
            source.set_result(None)
        assert await result == "foo"

    @pytest.mark.anyio
    async def test_to_thread(self, store):
        with store.scope("foo"):
            assert await asyncio.to_thread(store.get) == "foo"

    @pytest.mark.anyio
    async def test_awaited_sleep(self, store):
        with store.scope("foo"):
            before = store.get()
            await asyncio.sleep(0.01)
            assert store.get() == before

    @pytest.mark.anyio
    async def test_transitive_continuations(self, store):
        """A task spawned from a timer callback spawned in scope S still runs in S."""
        loop = asyncio.get_running_loop()
        result = loop.create_future()
        tasks = []

        async def second():
            await asyncio.sleep(0)
            result.set_result(store.get())

        def first():
            tasks.append(asyncio.ensure_future(second()))

        with store.scope("foo"):
            loop.call_later(0.01, first)
        assert await result == "foo"
        await asyncio.gather(*tasks)

    @pytest.mark.anyio
    async def test_retry_loop_keeps_scope(self, store):
        """Each attempt of an awaited retry loop sees the same ID."""
        attempts = []

        async def flaky():
            attempts.append(store.get())
            if len(attempts) < 3:
                raise ValueError("Temporary failure")
            return "success"

        async def with_retry():
            for _ in range(3):
                try:
                    return await flaky()
                except ValueError:
                    await asyncio.sleep(0.01)

        assert await store.enter_async(with_retry, "foo") == "success"
        assert attempts == ["foo"] * 3


class TestExecutorPropagation:
    """Thread pools need the propagator."""

    @threads_inherit_context
    @pytest.mark.anyio
    async def test_plain_run_in_executor_loses_scope(self, store):
        """Documents the failure mode the propagator exists for."""
        loop = asyncio.get_running_loop()
        with store.scope("foo"):
            assert await loop.run_in_executor(None, store.get) is None

    @pytest.mark.anyio
    async def test_run_in_executor(self, store, propagator):
        with store.scope("foo"):
            assert await propagator.run_in_executor(None, store.get) == "foo"

    @pytest.mark.anyio
    async def test_run_in_executor_with_args(self, store, propagator):
        def describe(prefix, suffix):
            return f"{prefix}{store.get()}{suffix}"

        with store.scope("foo"):
            result = await propagator.run_in_executor(None, describe, "<", ">")
        assert result == "<foo>"

    def test_executor_submit_and_map(self, store, propagator):
        with propagator.executor(max_workers=2) as executor:
            with store.scope("foo"):
                future = executor.submit(store.get)
                mapped = executor.map(lambda _: store.get(), range(3))
            assert future.result() == "foo"
            assert list(mapped) == ["foo"] * 3

    def test_executor_jobs_from_different_scopes(self, store, propagator):
        with propagator.executor(max_workers=1) as executor:
            with store.scope("id-1"):
                first = executor.submit(store.get)
            with store.scope("id-2"):
                second = executor.submit(store.get)
            assert first.result() == "id-1"
            assert second.result() == "id-2"


class TestThreadPropagation:
    """Threads and timers need the propagator."""

    @threads_inherit_context
    def test_plain_thread_loses_scope(self, store):
        seen = []
        with store.scope("foo"):
            thread = threading.Thread(target=lambda: seen.append(store.get()))
            thread.start()
            thread.join()
        assert seen == [None]

    def test_context_thread(self, store, propagator):
        seen = []
        with store.scope("foo"):
            thread = propagator.thread(lambda value: seen.append((value, store.get())), 33)
        thread.start()
        thread.join()
        assert seen == [(33, "foo")]

    def test_context_timer(self, store, propagator):
        seen = []
        with store.scope("foo"):
            timer = propagator.timer(0.01, lambda: seen.append(store.get()))
        timer.start()
        timer.join()
        assert seen == ["foo"]


class TestWrap:
    """wrap() snapshots the context at wrap time."""

    def test_wrap_uses_captured_scope(self, store, propagator):
        with store.scope("foo"):
            wrapped = propagator.wrap(store.get)
        with store.scope("bar"):
            assert wrapped() == "foo"
            assert store.get() == "bar"
        assert wrapped() == "foo"
        assert store.get() is None

    def test_wrap_is_reentrant(self, store, propagator):
        """The same snapshot can be entered while already running inside it."""
        calls = []

        def recurse(depth):
            calls.append(store.get())
            if depth:
                wrapped(depth - 1)

        with store.scope("foo"):
            wrapped = propagator.wrap(recurse)
        wrapped(2)
        assert calls == ["foo"] * 3

    def test_wrap_preserves_metadata(self, propagator):
        def documented():
            """Docs."""

        wrapped = propagator.wrap(documented)
        assert wrapped.__name__ == "documented"
        assert wrapped.__doc__ == "Docs."
