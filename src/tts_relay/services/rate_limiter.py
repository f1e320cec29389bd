"""Per-caller admission control for speech submissions."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """Admit at most ``max_requests`` per key within a sliding ``window_seconds``.

    Only admitted attempts are recorded, so rejected attempts never extend
    the window. Construct one per process and share it across requests.
    """

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    def _prune(self, key: str, now: float) -> deque[float]:
        hits = self._hits.get(key)
        if hits is None:
            hits = deque()
            self._hits[key] = hits
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    async def admit(self, key: str) -> bool:
        """Record an attempt for ``key`` and return whether it is admitted."""

        async with self._lock:
            now = self._clock()
            hits = self._prune(key, now)
            if len(hits) >= self.max_requests:
                logger.warning("Rate limit exceeded for %s", key)
                return False
            hits.append(now)
            return True

    async def purge(self) -> int:
        """Drop keys with no attempts left in the window; return how many were dropped."""

        async with self._lock:
            now = self._clock()
            stale = [key for key in list(self._hits) if not self._prune(key, now)]
            for key in stale:
                del self._hits[key]
            return len(stale)


__all__ = ["SlidingWindowRateLimiter"]
