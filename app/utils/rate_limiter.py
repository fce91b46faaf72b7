"""Async token bucket for pacing outbound NCBI E-utilities requests.

NCBI allows 10 requests/second with an API key and 3 without. Callers
await acquire(); when the bucket is empty they queue in FIFO order and
give up with RateLimitTimeout after queue_timeout seconds.
"""

import asyncio
import time
from collections import deque

from loguru import logger


class RateLimitTimeout(Exception):
    pass


class TokenBucket:
    def __init__(self, rate: float, capacity: int | None = None, queue_timeout: float = 60.0):
        self.rate = rate
        self.capacity = capacity or max(1, int(rate))
        self.queue_timeout = queue_timeout
        self._tokens = float(self.capacity)
        self._last_refill = time.monotonic()
        self._waiters: deque[asyncio.Future] = deque()
        self._wakeup: asyncio.TimerHandle | None = None

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
            self._last_refill = now

    def _dispatch(self) -> None:
        self._wakeup = None
        self._refill()
        while self._waiters and self._tokens >= 1:
            fut = self._waiters.popleft()
            if fut.done():
                continue
            self._tokens -= 1
            fut.set_result(None)
        self._schedule()

    def _schedule(self) -> None:
        # Drop waiters that already timed out
        while self._waiters and self._waiters[0].done():
            self._waiters.popleft()
        if not self._waiters or self._wakeup is not None:
            return
        delay = max(0.0, (1 - self._tokens) / self.rate)
        self._wakeup = asyncio.get_running_loop().call_later(delay, self._dispatch)

    async def acquire(self) -> None:
        self._refill()
        if not self._waiters and self._tokens >= 1:
            self._tokens -= 1
            return

        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.debug("Rate limit bucket empty, queued", queue_length=len(self._waiters))
        self._schedule()
        try:
            await asyncio.wait_for(fut, timeout=self.queue_timeout)
        except asyncio.TimeoutError:
            raise RateLimitTimeout(
                f"Waited more than {self.queue_timeout}s for an E-utilities request slot"
            ) from None

    def status(self) -> dict:
        self._refill()
        return {
            "available_tokens": int(self._tokens),
            "queue_length": sum(1 for w in self._waiters if not w.done()),
            "requests_per_second": self.rate,
        }
