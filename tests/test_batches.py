"""Tests for batched fan-out."""

import asyncio

import pytest

from gh_commit_sync.collect.batches import gather_in_batches


class TestGatherInBatches:
    """Tests for gather_in_batches."""

    @pytest.mark.asyncio
    async def test_preserves_order(self) -> None:
        async def worker(n: int) -> int:
            await asyncio.sleep(0.001 * (5 - n))
            return n * 10

        assert await gather_in_batches([1, 2, 3, 4, 5], worker, 2) == [10, 20, 30, 40, 50]

    @pytest.mark.asyncio
    async def test_bounds_concurrency(self) -> None:
        in_flight = 0
        peak = 0

        async def worker(n: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return n

        await gather_in_batches(list(range(10)), worker, 3)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_batch_settles_before_error_propagates(self) -> None:
        finished: list[int] = []

        async def worker(n: int) -> int:
            if n == 1:
                raise ValueError("boom")
            await asyncio.sleep(0)
            finished.append(n)
            return n

        with pytest.raises(ValueError, match="boom"):
            await gather_in_batches([0, 1, 2, 3], worker, 3)

        # Rest of the failing batch ran; the next batch never started
        assert sorted(finished) == [0, 2]

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        async def worker(n: int) -> int:
            return n

        assert await gather_in_batches([], worker, 5) == []

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self) -> None:
        async def worker(n: int) -> int:
            return n

        with pytest.raises(ValueError, match="batch_size"):
            await gather_in_batches([1], worker, 0)
