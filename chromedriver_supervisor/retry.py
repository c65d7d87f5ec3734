from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)


class RetryExhausted(Exception):
    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


async def retry(
    fn: Callable[[], Awaitable[T]],
    interval: float,
    attempts: int,
) -> T:
    """Call ``fn`` until it returns without raising.

    ``attempts`` is the total number of calls; ``interval`` seconds are
    slept between consecutive calls. No backoff, no jitter.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            if attempt == attempts:
                raise RetryExhausted(attempts, exc) from exc
            log.debug("Attempt %d/%d failed: %s", attempt, attempts, exc)
            await asyncio.sleep(interval)

    raise AssertionError("unreachable")
