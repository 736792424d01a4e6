"""Bounded retry policy for rate-limited sources."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from steam_pricer.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Max attempts, a backoff schedule and a retryable-error predicate.

    The delay before attempt ``n + 1`` is
    ``backoff_seconds * multiplier ** (n - 1)``; a multiplier of 1.0 gives a
    fixed interval.
    """

    max_attempts: int = 3
    backoff_seconds: float = 5.0
    multiplier: float = 1.0
    retry_on: tuple[type[Exception], ...] = (RateLimitError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.backoff_seconds * self.multiplier ** (attempt - 1)

    def is_retryable(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retry_on)

    async def run(
        self,
        operation: Callable[[int], Awaitable[T]],
        sleep: Callable[[float], Awaitable[None]],
    ) -> T:
        """Call ``operation(attempt)`` until it succeeds or attempts run out.

        Non-retryable exceptions propagate immediately. When the last
        attempt fails with a retryable exception, that exception propagates.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation(attempt)
            except Exception as e:
                if not self.is_retryable(e) or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "%s, retrying in %.1fs (attempt %d/%d)",
                    e, delay, attempt, self.max_attempts,
                )
                await sleep(delay)

        # max_attempts >= 1 guarantees the loop returns or raises
        raise RuntimeError("retry loop exited without a result")
