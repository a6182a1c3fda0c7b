"""Pacing policies for upstream requests.

The feed has no published rate limit, so every scorecard request is
preceded by ``await pacer.wait()``. Clock and sleep are injectable so tests
can drive a virtual clock.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from .config import AppSettings
from .cricket_logging import get_logger

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]


class FixedDelayPacer:
    """Sleep a fixed interval before every request."""

    def __init__(self, delay_s: float, sleep: Optional[SleepFn] = None) -> None:
        self.delay_s = delay_s
        self._sleep = sleep or asyncio.sleep

    async def wait(self) -> None:
        if self.delay_s > 0:
            await self._sleep(self.delay_s)

    async def __aenter__(self) -> "FixedDelayPacer":
        await self.wait()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass


class TokenBucket:
    """Token bucket rate limiter with async context manager support."""

    def __init__(
        self,
        rate: float,
        capacity: Optional[int] = None,
        clock: Optional[ClockFn] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        """Initialize token bucket.

        Args:
            rate: Tokens per second refill rate
            capacity: Maximum token capacity (defaults to rate, at least 1)
            clock: Monotonic clock, defaults to time.monotonic
            sleep: Async sleep, defaults to asyncio.sleep
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.capacity = capacity or max(1, int(rate))
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self.tokens = float(self.capacity)
        self.last_update = self._clock()
        self._lock = asyncio.Lock()

    async def acquire(self, tokens: int = 1) -> None:
        """Acquire tokens from the bucket, blocking if necessary."""
        async with self._lock:
            now = self._clock()
            elapsed = now - self.last_update
            self.tokens = min(float(self.capacity), self.tokens + elapsed * self.rate)
            self.last_update = now

            if self.tokens < tokens:
                wait_time = (tokens - self.tokens) / self.rate
                logger.debug("Rate limit reached, waiting", wait_time=wait_time)
                await self._sleep(wait_time)
                self.tokens = 0.0
                self.last_update = self._clock()
            else:
                self.tokens -= tokens

    async def wait(self) -> None:
        await self.acquire()

    async def __aenter__(self) -> "TokenBucket":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass


def build_pacer(settings: AppSettings, sleep: Optional[SleepFn] = None):
    """Pick the pacing policy described by settings."""
    if settings.PACING_RPS:
        logger.info("Using token bucket pacing", requests_per_second=settings.PACING_RPS)
        return TokenBucket(settings.PACING_RPS, sleep=sleep)
    return FixedDelayPacer(settings.PACING_DELAY_S, sleep=sleep)
