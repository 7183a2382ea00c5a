"""Tests for single-flight request coalescing."""

import asyncio

import pytest

from tiercache.cache.coalescer import RequestCoalescer, call_fetcher


class TestCallFetcher:
    """Tests for sync/async fetcher invocation."""

    @pytest.mark.asyncio
    async def test_sync_fetcher(self) -> None:
        assert await call_fetcher(lambda: 7) == 7

    @pytest.mark.asyncio
    async def test_async_fetcher(self) -> None:
        async def fetch() -> int:
            return 8

        assert await call_fetcher(fetch) == 8


class TestRequestCoalescer:
    """Tests for RequestCoalescer."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self) -> None:
        """Only the first caller runs the fetcher; the others get its result."""
        coalescer = RequestCoalescer()
        calls = 0

        async def fetch() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.02)
            return "value"

        results = await asyncio.gather(*(coalescer.run("k", fetch) for _ in range(5)))

        assert results == ["value"] * 5
        assert calls == 1
        assert coalescer.active_requests == 0

    @pytest.mark.asyncio
    async def test_different_keys_fetch_independently(self) -> None:
        coalescer = RequestCoalescer()
        calls: list[str] = []

        def make(key: str):
            async def fetch() -> str:
                calls.append(key)
                await asyncio.sleep(0.01)
                return key

            return fetch

        results = await asyncio.gather(coalescer.run("a", make("a")), coalescer.run("b", make("b")))

        assert results == ["a", "b"]
        assert sorted(calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_error_propagates_to_all_waiters(self) -> None:
        """Every concurrent caller sees the fetcher's exception."""
        coalescer = RequestCoalescer()

        async def fetch() -> None:
            await asyncio.sleep(0.01)
            raise ValueError("upstream down")

        results = await asyncio.gather(
            *(coalescer.run("k", fetch) for _ in range(3)), return_exceptions=True
        )

        assert all(isinstance(r, ValueError) for r in results)
        assert coalescer.active_requests == 0

    @pytest.mark.asyncio
    async def test_key_is_released_after_failure(self) -> None:
        """A failed flight does not block the next attempt."""
        coalescer = RequestCoalescer()

        def boom() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await coalescer.run("k", boom)

        assert await coalescer.run("k", lambda: "ok") == "ok"

    @pytest.mark.asyncio
    async def test_waiter_timeout(self) -> None:
        """A joining caller gives up after the timeout; the initiator still finishes."""
        coalescer = RequestCoalescer(timeout=0.01)

        async def slow() -> str:
            await asyncio.sleep(0.1)
            return "late"

        first = asyncio.create_task(coalescer.run("k", slow))
        await asyncio.sleep(0)

        with pytest.raises(TimeoutError):
            await coalescer.run("k", slow)

        assert await first == "late"

    @pytest.mark.asyncio
    async def test_stats(self) -> None:
        coalescer = RequestCoalescer()
        started = asyncio.Event()
        release = asyncio.Event()

        async def fetch() -> int:
            started.set()
            await release.wait()
            return 1

        task = asyncio.create_task(coalescer.run("threat:analysis:x", fetch))
        await started.wait()

        assert coalescer.get_stats() == {
            "active_requests": 1,
            "active_keys": ["threat:analysis:x"],
        }

        release.set()
        assert await task == 1

    @pytest.mark.asyncio
    async def test_cancelled_initiator_does_not_cancel_joined_callers(self) -> None:
        """The shared fetch keeps running when the caller that started it is cancelled."""
        coalescer = RequestCoalescer()
        calls = 0

        async def fetch() -> str:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)
            return "computed"

        first = asyncio.create_task(coalescer.run("k", fetch))
        await asyncio.sleep(0)
        second = asyncio.create_task(coalescer.run("k", fetch))
        await asyncio.sleep(0.01)

        first.cancel()

        assert await second == "computed"
        with pytest.raises(asyncio.CancelledError):
            await first
        assert calls == 1
        assert coalescer.active_requests == 0
