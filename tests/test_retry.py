from __future__ import annotations

import asyncio
import time

import pytest

from chromedriver_supervisor.retry import RetryExhausted, retry


class Flaky:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls: list[float] = []

    async def __call__(self) -> str:
        self.calls.append(time.monotonic())
        if len(self.calls) <= self.failures:
            raise ConnectionError(f"attempt {len(self.calls)} refused")
        return "ok"


def test_first_success_returns_immediately():
    fn = Flaky(failures=0)
    assert asyncio.run(retry(fn, 5.0, 3)) == "ok"
    assert len(fn.calls) == 1


def test_succeeds_after_n_attempts_with_fixed_spacing():
    interval = 0.05
    fn = Flaky(failures=3)

    assert asyncio.run(retry(fn, interval, 5)) == "ok"

    assert len(fn.calls) == 4
    gaps = [b - a for a, b in zip(fn.calls, fn.calls[1:])]
    assert all(gap >= interval * 0.8 for gap in gaps)
    # fixed delay: no gap grows like a backoff would
    assert max(gaps) < interval * 4


def test_exhaustion_wraps_last_error():
    fn = Flaky(failures=10)

    with pytest.raises(RetryExhausted) as info:
        asyncio.run(retry(fn, 0.0, 3))

    assert info.value.attempts == 3
    assert isinstance(info.value.last_error, ConnectionError)
    assert "attempt 3" in str(info.value.last_error)
    assert len(fn.calls) == 3


def test_attempts_must_be_positive():
    with pytest.raises(ValueError):
        asyncio.run(retry(Flaky(0), 0.0, 0))
