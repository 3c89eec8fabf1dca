# rentradar/adapters/clients/rate_limiter.py
from __future__ import annotations

import asyncio
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from ...domain.types import RateLimit

WINDOW_S = 60.0


class RateLimiter:
    """
    Per-source pacing. acquire() waits until all three hold:
      - fewer than max_concurrent_requests grants are outstanding
      - fewer than requests_per_minute grants in the rolling 60s window
      - delay_between_requests_s has passed since the last grant

    It never fails, it only delays. One instance per source; instances never share state.
    """

    def __init__(
        self,
        limits: RateLimit,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.limits = limits
        self._clock = clock
        self._sleep = sleep
        self._slots = asyncio.Semaphore(max(1, int(limits.max_concurrent_requests)))
        self._pace_lock = asyncio.Lock()
        self._granted: deque[float] = deque()
        self._outstanding = 0

    async def acquire(self) -> None:
        await self._slots.acquire()
        try:
            async with self._pace_lock:
                await self._wait_for_turn()
                self._granted.append(self._clock())
        except BaseException:
            self._slots.release()
            raise
        self._outstanding += 1

    def release(self) -> None:
        if self._outstanding <= 0:
            return
        self._outstanding -= 1
        self._slots.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    async def _wait_for_turn(self) -> None:
        rpm = max(1, int(self.limits.requests_per_minute))
        gap = max(0.0, float(self.limits.delay_between_requests_s))
        while True:
            now = self._clock()
            self._prune(now)

            wait = 0.0
            if self._granted:
                wait = (self._granted[-1] + gap) - now
            if len(self._granted) >= rpm:
                wait = max(wait, (self._granted[0] + WINDOW_S) - now)

            if wait <= 0:
                return
            await self._sleep(wait)

    def _prune(self, now: float) -> None:
        while self._granted and (now - self._granted[0]) >= WINDOW_S:
            self._granted.popleft()

    def stats(self) -> dict[str, float | int]:
        self._prune(self._clock())
        return {
            "requests_in_last_minute": len(self._granted),
            "active_requests": self._outstanding,
            "requests_per_minute": self.limits.requests_per_minute,
            "delay_between_requests_s": self.limits.delay_between_requests_s,
            "max_concurrent_requests": self.limits.max_concurrent_requests,
        }
