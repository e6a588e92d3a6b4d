"""Bounded retry policy for async calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, last_error: BaseException, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")


@dataclass(frozen=True)
class RetryPolicy:
    """Run an async callable up to ``max_attempts`` times with a fixed backoff.

    Errors matching ``give_up_on`` propagate immediately; errors matching
    ``retry_on`` are retried; anything else propagates. Cancellation is never
    retried because ``asyncio.CancelledError`` is not an ``Exception``.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    give_up_on: tuple[type[BaseException], ...] = ()
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    async def run(self, fn: Callable[[], Awaitable[T]], *, label: str = "call") -> T:
        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await fn()
            except self.give_up_on:
                raise
            except self.retry_on as exc:
                last_error = exc
                if attempt == self.max_attempts:
                    break
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                    label, attempt, self.max_attempts, self.backoff_seconds, exc,
                )
                if self.backoff_seconds > 0:
                    await self.sleep(self.backoff_seconds)

        raise RetryExhaustedError(last_error, self.max_attempts)
