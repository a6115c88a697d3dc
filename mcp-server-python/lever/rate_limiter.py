"""
Token bucket rate limiter for the Lever API.

Lever documents no hard number but throttles at roughly 10 requests/second. The
defaults (burst of 15, refill of 8/s) keep sustained throughput just under that
while leaving a little burst headroom for bursty tool calls.

The limiter does not queue callers itself; fairness comes from the request queue
in front of it, which only ever lets one caller acquire at a time.
"""

import asyncio
import time
from typing import Awaitable, Callable

DEFAULT_CAPACITY = 15
DEFAULT_REFILL_PER_SECOND = 8.0

# Float slack so an exact-length sleep always yields a whole token.
_EPSILON = 1e-9


class TokenBucket:
    """
    Token bucket with exact-wait admission.

    Tokens accumulate at ``refill_rate`` per second up to ``capacity``. ``acquire``
    takes one token, sleeping exactly long enough for a token to accrue when the
    bucket is empty instead of polling on a fixed interval.

    Args:
        capacity: Maximum number of tokens (burst size). The bucket starts full.
        refill_rate: Tokens added per second.
        clock: Monotonic time source in seconds.
        sleep: Coroutine used to wait; injectable so tests can simulate time.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        refill_rate: float = DEFAULT_REFILL_PER_SECOND,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if refill_rate <= 0:
            raise ValueError(f"refill_rate must be positive, got {refill_rate}")

        self.capacity = capacity
        self.refill_rate = float(refill_rate)
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._last_refill = clock()

    @property
    def tokens(self) -> float:
        """Currently available tokens, refreshed to the present moment."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    def wait_time(self) -> float:
        """Seconds until one token is available (0.0 if one is available now)."""
        self._refill()
        if self._tokens >= 1 - _EPSILON:
            return 0.0
        return (1 - self._tokens) / self.refill_rate

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        while True:
            wait = self.wait_time()
            if wait <= 0:
                self._tokens = max(0.0, self._tokens - 1)
                return
            await self._sleep(wait)
