"""Outbound line throttling to stay under IRC server flood limits."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from raccoon.config import FloodConfig

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class FloodThrottle:
    """Token bucket: ``burst`` lines at once, then one line per ``interval``."""

    def __init__(
        self,
        config: FloodConfig | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config or FloodConfig()
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self._config.burst)
        self._updated = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._updated = now
        if self._config.interval <= 0:
            self._tokens = float(self._config.burst)
            return
        self._tokens = min(
            float(self._config.burst),
            self._tokens + elapsed / self._config.interval,
        )

    def delay(self) -> float:
        """Seconds until a line may be sent. Takes a token when it returns 0."""
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return 0.0
        return (1.0 - self._tokens) * self._config.interval

    async def acquire(self) -> None:
        wait = self.delay()
        while wait > 0:
            await self._sleep(wait)
            wait = self.delay()
