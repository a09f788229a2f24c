"""Tests for per-channel minimum-gap flood control."""

import pytest

from freezewatch.notifications.rate_limit import MinIntervalLimiter
from tests.helpers import RecordingSleep


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMinIntervalLimiter:

    @pytest.mark.asyncio
    async def test_disabled_never_waits(self):
        sleep = RecordingSleep()
        limiter = MinIntervalLimiter(clock=FakeClock(), sleep=sleep)

        for _ in range(3):
            assert await limiter.acquire(0) == 0.0
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_first_post_is_immediate(self):
        sleep = RecordingSleep()
        limiter = MinIntervalLimiter(clock=FakeClock(), sleep=sleep)

        assert await limiter.acquire(5.0) == 0.0
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_early_post_waits_for_gap(self):
        clock = FakeClock()
        sleep = RecordingSleep()
        limiter = MinIntervalLimiter(clock=clock, sleep=sleep)

        await limiter.acquire(5.0)
        clock.now += 2.0
        waited = await limiter.acquire(5.0)

        assert waited == pytest.approx(3.0)
        assert sleep.delays == [pytest.approx(3.0)]

    @pytest.mark.asyncio
    async def test_no_wait_once_gap_elapsed(self):
        clock = FakeClock()
        sleep = RecordingSleep()
        limiter = MinIntervalLimiter(clock=clock, sleep=sleep)

        await limiter.acquire(5.0)
        clock.now += 6.0
        assert await limiter.acquire(5.0) == 0.0
        assert sleep.delays == []
