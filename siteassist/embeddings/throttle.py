"""
Token Bucket Throttle
Client-side pacing for embedding provider calls
"""
from typing import Awaitable, Callable, Optional
import asyncio
import time


class TokenBucket:
    """
    Classic token bucket.

    Holds up to `capacity` tokens, refilled continuously at `rate` tokens per
    second. acquire() waits until a token is available. Clock and sleep are
    injectable so tests can drive time without sleeping.
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)
        self._updated = now

    @property
    def tokens(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self, tokens: int = 1) -> float:
        """
        Take `tokens` from the bucket, waiting as needed.

        Returns:
            Total seconds spent waiting
        """
        if tokens > self.capacity:
            raise ValueError("cannot acquire more tokens than the bucket holds")

        waited = 0.0
        async with self._lock:
            self._refill()
            if self._tokens < tokens:
                waited = (tokens - self._tokens) / self.rate
                await self._sleep(waited)
                self._refill()
                # Sleeping the exact deficit can leave a float a hair short
                self._tokens = max(self._tokens, float(tokens))
            self._tokens -= tokens
            return waited


def per_second(rate: Optional[float], burst: int = 1) -> Optional[TokenBucket]:
    """A bucket for `rate` calls/second, or None when unthrottled"""
    if not rate:
        return None
    return TokenBucket(rate=rate, capacity=burst)


__all__ = ["TokenBucket", "per_second"]
