"""Tests for in-flight operation deduplication."""

import asyncio

import pytest

from chatrelay.llm.concurrency import IdempotencyRegistry, OperationKey

KEY = OperationKey("provider-cache-model", "ollama", "llama3.2:latest")


class TestOperationKey:
    def test_keys_with_separators_do_not_collide(self):
        a = OperationKey("op", "ollama", "llama3.2:latest")
        b = OperationKey("op:ollama", "llama3.2", "latest")
        assert a != b
        assert len({a, b}) == 2


class TestIdempotencyRegistry:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_execution(self):
        registry = IdempotencyRegistry()
        calls = []

        async def work():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "result"

        results = await asyncio.gather(*(registry.run(KEY, work) for _ in range(5)))

        assert results == ["result"] * 5
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_key_released_after_completion(self):
        registry = IdempotencyRegistry()
        calls = []

        async def work():
            calls.append(1)
            return len(calls)

        assert await registry.run(KEY, work) == 1
        assert registry.has(KEY) is False
        assert registry.size() == 0
        assert await registry.run(KEY, work) == 2

    @pytest.mark.asyncio
    async def test_in_flight_key_is_visible(self):
        registry = IdempotencyRegistry()
        release = asyncio.Event()

        async def work():
            await release.wait()
            return "done"

        task = asyncio.ensure_future(registry.run(KEY, work))
        await asyncio.sleep(0)
        assert registry.has(KEY)
        assert registry.size() == 1

        release.set()
        assert await task == "done"
        assert registry.size() == 0

    @pytest.mark.asyncio
    async def test_exception_reaches_every_waiter_and_releases_key(self):
        registry = IdempotencyRegistry()

        async def work():
            await asyncio.sleep(0.01)
            raise ValueError("boom")

        results = await asyncio.gather(
            *(registry.run(KEY, work) for _ in range(3)), return_exceptions=True
        )

        assert all(isinstance(r, ValueError) for r in results)
        assert registry.has(KEY) is False

    @pytest.mark.asyncio
    async def test_different_keys_run_independently(self):
        registry = IdempotencyRegistry()
        other = OperationKey("provider-cache-model", "openai", "gpt-4o")
        calls = []

        async def work():
            calls.append(1)
            await asyncio.sleep(0)
            return len(calls)

        await asyncio.gather(registry.run(KEY, work), registry.run(other, work))
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_task(self):
        registry = IdempotencyRegistry()
        calls = []

        async def work():
            calls.append(1)
            await asyncio.sleep(0.05)
            return "done"

        first = asyncio.ensure_future(registry.run(KEY, work))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(registry.run(KEY, work))
        await asyncio.sleep(0.01)

        first.cancel()
        assert await second == "done"
        with pytest.raises(asyncio.CancelledError):
            await first
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_clear_makes_next_caller_start_fresh(self):
        registry = IdempotencyRegistry()
        release = asyncio.Event()
        calls = []

        async def work():
            calls.append(1)
            await release.wait()
            return len(calls)

        first = asyncio.ensure_future(registry.run(KEY, work))
        await asyncio.sleep(0)
        registry.clear(KEY)
        second = asyncio.ensure_future(registry.run(KEY, work))
        await asyncio.sleep(0)

        release.set()
        await asyncio.gather(first, second)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_clear_all(self):
        registry = IdempotencyRegistry()
        release = asyncio.Event()

        async def work():
            await release.wait()

        tasks = [
            asyncio.ensure_future(registry.run(OperationKey("op", "p", str(i)), work))
            for i in range(3)
        ]
        await asyncio.sleep(0)
        assert registry.size() == 3

        registry.clear()
        assert registry.size() == 0

        release.set()
        await asyncio.gather(*tasks)
