"""In-memory sliding window rate limiter implementation."""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Deque, DefaultDict


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a single rate limit check, rendered as ``RateLimit-*`` headers."""

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int

    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }


class SlidingWindowRateLimiter:
    """Thread-safe sliding window rate limiter."""

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        """Initialise limiter parameters and per-key storage."""
        self._max_requests = max_requests
        self._window = window_seconds
        self._events: DefaultDict[str, Deque[float]] = DefaultDict(deque)
        self._lock = Lock()
        self._last_sweep = time.time()

    def hit(self, key: str) -> RateLimitDecision:
        """Count a request for ``key`` if it fits in the window and report the quota."""
        now = time.time()
        with self._lock:
            if now - self._last_sweep >= self._window:
                self._sweep(now)
            queue = self._events[key]
            while queue and now - queue[0] >= self._window:
                queue.popleft()
            allowed = len(queue) < self._max_requests
            if allowed:
                queue.append(now)
            reset = self._window - (now - queue[0]) if queue else self._window
            return RateLimitDecision(
                allowed=allowed,
                limit=self._max_requests,
                remaining=max(0, self._max_requests - len(queue)),
                reset_seconds=max(0, math.ceil(reset)),
            )

    def _sweep(self, now: float) -> None:
        """Forget keys with no requests left inside the window."""
        for key, queue in list(self._events.items()):
            if not queue or now - queue[-1] >= self._window:
                del self._events[key]
        self._last_sweep = now

    def allow(self, key: str) -> bool:
        """Return ``True`` when the request is within the configured rate limit."""
        return self.hit(key).allowed
