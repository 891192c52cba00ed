# Filename: rate_limiter.py

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque

logger = logging.getLogger("RateLimiter")

SAFETY_BUFFER_SECONDS = 0.1


class RateLimiter:
    """
    Sliding window limiter for outbound DexScreener calls.
    DexScreener allows 300 requests per minute, default stays safely under it.
    """

    def __init__(self, max_requests: int = 250, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.sleep = sleep
        self.requests: Deque[float] = deque()

    def _prune(self, now: float):
        while self.requests and now - self.requests[0] >= self.window_seconds:
            self.requests.popleft()

    def can_make_request(self) -> bool:
        self._prune(self.clock())
        return len(self.requests) < self.max_requests

    def record_request(self):
        self.requests.append(self.clock())

    async def wait_for_slot(self):
        # A single wait is not always enough, another caller may take the slot first.
        while not self.can_make_request():
            oldest = self.requests[0]
            wait_time = self.window_seconds - (self.clock() - oldest) + SAFETY_BUFFER_SECONDS
            if wait_time > 0:
                logger.debug(f"[RATE LIMIT] Window full, waiting {wait_time:.2f}s")
                await self.sleep(wait_time)

    def remaining(self) -> int:
        self._prune(self.clock())
        return max(0, self.max_requests - len(self.requests))
