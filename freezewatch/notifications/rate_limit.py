"""Minimum-gap flood control for a single channel."""

import asyncio
import time
from typing import Awaitable, Callable


class MinIntervalLimiter:
    """
    Spaces posts on one channel at least ``min_interval`` seconds apart.

    An early post waits for the gap instead of being dropped. Posts that
    arrive while another one is waiting queue up behind it in order.
    The gap is passed per call because it comes from the live config.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._last_post: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self, min_interval: float) -> float:
        """Wait until a post is allowed and reserve the slot.

        Returns:
            Seconds spent waiting.
        """
        if min_interval <= 0:
            self._last_post = self._clock()
            return 0.0

        async with self._lock:
            waited = 0.0
            if self._last_post is not None:
                remaining = min_interval - (self._clock() - self._last_post)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last_post = self._clock()
            return waited
