"""Fixed-size worker pool over an ordered item list."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[R]],
    workers: int = 3,
) -> list[R]:
    """Apply ``operation`` to every item with at most ``workers`` in flight.

    Workers claim items from a shared cursor, so each item is processed by
    exactly one worker. Results come back in input order whatever order the
    calls finish in.

    Returns only once every worker is done. After the first exception raised
    by ``operation`` no further items are claimed; calls already in flight
    finish, then that exception is re-raised.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    results: list[R | None] = [None] * len(items)
    cursor = 0
    failed = False

    async def worker() -> None:
        nonlocal cursor, failed
        while not failed:
            # Read-and-increment has no await in between, so no other worker
            # can claim the same index.
            index = cursor
            if index >= len(items):
                return
            cursor += 1
            try:
                results[index] = await operation(items[index])
            except Exception:
                failed = True
                raise

    pool_size = min(workers, len(items))
    if pool_size == 0:
        return []

    logger.debug("Running %d items on %d workers", len(items), pool_size)
    outcomes = await asyncio.gather(
        *(worker() for _ in range(pool_size)), return_exceptions=True
    )
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return results  # type: ignore[return-value]
