"""Fixed-size batch fan-out.

Items of a batch run concurrently; the next batch starts only after the whole
previous batch finished. This bounds the number of in-flight requests no
matter how many items there are.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int,
    delay: float = 0.0,
) -> list[R]:
    """Run ``worker`` over ``items`` in batches of ``batch_size``.

    Args:
        items: Work items, processed in order.
        worker: Coroutine function applied to each item.
        batch_size: Maximum concurrent workers.
        delay: Pause between batches in seconds.

    Returns:
        Results in the same order as ``items``. The first exception raised by
        a worker propagates once its batch has settled.
    """
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ValueError(msg)

    results: list[R] = []
    for offset in range(0, len(items), batch_size):
        if offset and delay:
            await asyncio.sleep(delay)
        batch = items[offset : offset + batch_size]
        outcomes = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        results.extend(outcomes)  # type: ignore[arg-type]
    return results
