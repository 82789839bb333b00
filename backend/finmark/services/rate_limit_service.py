# Overview: Per-client request budget for the /api surface.

"""
Fixed-window rate limiter.

Each client IP gets RATE_LIMIT_MAX_REQUESTS requests per
RATE_LIMIT_WINDOW_SECONDS. State is kept in process memory, so limits are
per worker. Constants mirror the login throttle: a hit returns 429 with
retry_after seconds.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class _Window:
    started_at: float
    count: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int


class FixedWindowRateLimiter:
    def __init__(self, max_requests: int, window_seconds: int, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for `key` and say whether it may proceed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(started_at=now, count=0)
                self._windows[key] = window
                self._prune(now)

            reset_in = max(int(window.started_at + self.window_seconds - now + 0.999), 1)
            if window.count >= self.max_requests:
                return RateLimitDecision(allowed=False, remaining=0, retry_after=reset_in)

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - window.count,
                retry_after=0,
            )

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for k in expired:
            del self._windows[k]


EXTENSION_KEY = "finmark_rate_limiter"


def init_rate_limiter(app) -> FixedWindowRateLimiter:
    limiter = FixedWindowRateLimiter(
        max_requests=app.config["RATE_LIMIT_MAX_REQUESTS"],
        window_seconds=app.config["RATE_LIMIT_WINDOW_SECONDS"],
    )
    app.extensions[EXTENSION_KEY] = limiter
    return limiter


def get_rate_limiter(app) -> FixedWindowRateLimiter:
    return app.extensions[EXTENSION_KEY]
