"""
Token bucket rate limiter for outbound provider calls.
Bounds requests per minute so a sync run stays under the provider's quota.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from etf_intelligence.ingestion.config.value_objects import RateLimitConfig

logger = logging.getLogger(__name__)


class IRateLimiter(Protocol):
    """Protocol for rate limiting strategies."""

    async def acquire(self) -> None:
        """Wait until one request may be sent, then consume it."""
        ...


class TokenBucketRateLimiter:
    """
    Token bucket with capacity = requests per minute.

    Tokens refill continuously at capacity/60 per second. ``acquire()`` waits
    for the deficit when less than one token is available. Concurrent callers
    are serialized by an internal lock so the bucket is only ever touched by
    one coroutine at a time.
    """

    def __init__(
        self,
        requests_per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be >= 1")

        self.capacity = float(requests_per_minute)
        self.rate = requests_per_minute / 60.0  # tokens per second
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._last_refill = clock()
        self._lock = asyncio.Lock()
        self.total_acquired = 0
        self.total_wait_seconds = 0.0

        logger.info(
            f"Token bucket initialized: capacity={self.capacity:.0f}, "
            f"rate={self.rate:.2f}/s"
        )

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "TokenBucketRateLimiter":
        return cls(config.requests_per_minute)

    @property
    def tokens(self) -> float:
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._last_refill = now

    async def acquire(self) -> None:
        async with self._lock:
            self._refill()

            if self._tokens < 1:
                wait = (1 - self._tokens) / self.rate
                logger.debug(f"⏳ Rate limit reached, waiting {wait:.3f}s")
                self.total_wait_seconds += wait
                await self._sleep(wait)
                self._refill()
                # A clock that did not advance enough must not push the bucket negative
                if self._tokens < 1:
                    self._tokens = 1.0

            self._tokens -= 1
            self.total_acquired += 1
