"""Tests for steam_pricer.pricing.pool."""

import asyncio

import pytest

from steam_pricer.pricing.pool import run_bounded


class TestRunBounded:
    async def test_results_in_input_order(self):
        async def op(n):
            # Later items finish first
            await asyncio.sleep(0.001 * (10 - n))
            return n * n

        results = await run_bounded(list(range(10)), op, workers=3)
        assert results == [n * n for n in range(10)]

    async def test_each_item_exactly_once(self):
        seen = []

        async def op(n):
            seen.append(n)
            await asyncio.sleep(0)
            return n

        await run_bounded(list(range(10)), op, workers=3)
        assert sorted(seen) == list(range(10))

    async def test_concurrency_bounded(self):
        active = 0
        peak = 0

        async def op(n):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.001)
            active -= 1
            return n

        await run_bounded(list(range(10)), op, workers=3)
        assert peak == 3

    async def test_fewer_items_than_workers(self):
        async def op(n):
            return n + 1

        assert await run_bounded([1, 2], op, workers=5) == [2, 3]

    async def test_empty_input(self):
        async def op(n):
            raise AssertionError("should not be called")

        assert await run_bounded([], op, workers=3) == []

    async def test_invalid_worker_count(self):
        async def op(n):
            return n

        with pytest.raises(ValueError, match="workers"):
            await run_bounded([1], op, workers=0)

    async def test_error_propagates(self):
        async def op(n):
            if n == 4:
                raise RuntimeError("boom")
            return n

        with pytest.raises(RuntimeError, match="boom"):
            await run_bounded(list(range(6)), op, workers=2)

    async def test_no_calls_after_failure(self):
        calls = []
        finished = []

        async def op(n):
            calls.append(n)
            await asyncio.sleep(0)
            if n == 0:
                raise RuntimeError("boom")
            await asyncio.sleep(0.01)
            finished.append(n)
            return n

        with pytest.raises(RuntimeError, match="boom"):
            await run_bounded(list(range(10)), op, workers=3)

        # The siblings already in flight finished before the call returned
        assert calls == [0, 1, 2]
        assert finished == [1, 2]
        await asyncio.sleep(0.05)
        assert calls == [0, 1, 2]
