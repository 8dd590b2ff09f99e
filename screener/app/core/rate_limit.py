"""Sliding-window limiter for task starts"""

import asyncio
import time
from collections import deque
from typing import Callable, Deque


class SlidingWindowRateLimiter:
    """Allows at most ``max_calls`` acquisitions per rolling ``window_seconds``"""
    
    def __init__(
        self,
        max_calls: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._starts: Deque[float] = deque()
        self._lock = asyncio.Lock()
    
    def _prune(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= self.window_seconds:
            self._starts.popleft()
    
    def try_acquire(self) -> bool:
        """Take a slot if one is free right now"""
        now = self._clock()
        self._prune(now)
        if len(self._starts) < self.max_calls:
            self._starts.append(now)
            return True
        return False
    
    async def acquire(self) -> float:
        """Wait until a slot is free, then take it; returns the slot's start time"""
        while True:
            async with self._lock:
                if self.try_acquire():
                    return self._starts[-1]
                wait = self._starts[0] + self.window_seconds - self._clock()
            await asyncio.sleep(max(wait, 0.01))
    
    def release(self, started: float) -> None:
        """Give back a slot taken by ``acquire`` that was not used"""
        if started in self._starts:
            self._starts.remove(started)
