"""Fixed-window rate limiting for order placement, keyed by client address."""

import math
import threading
import time

from fastapi import Request

from checkout.config import get_settings
from checkout.errors import RateLimited
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class FixedWindowRateLimiter:
    """At most ``limit`` hits per key in each ``window_seconds`` window.

    In-process only; every worker keeps its own counters.
    """

    def __init__(self, limit: int, window_seconds: int, clock=time.monotonic) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, tuple[float, int]] = {}

    def _window(self, key: str, now: float) -> tuple[float, int]:
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            return now, 0
        return started, count

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]

    def check(self, key: str) -> bool:
        """Count a hit for ``key``; False when it is over the limit."""
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            started, count = self._window(key, now)
            if count >= self.limit:
                self._windows[key] = (started, count)
                return False
            self._windows[key] = (started, count + 1)
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            _, count = self._window(key, self._clock())
            return max(self.limit - count, 0)

    def reset_in(self, key: str) -> int:
        """Seconds until ``key``'s current window ends."""
        with self._lock:
            now = self._clock()
            started, _ = self._window(key, now)
            return max(math.ceil(started + self.window_seconds - now), 0)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


_checkout_limiter: FixedWindowRateLimiter | None = None


def get_checkout_limiter() -> FixedWindowRateLimiter:
    global _checkout_limiter
    if _checkout_limiter is None:
        settings = get_settings()
        _checkout_limiter = FixedWindowRateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)
    return _checkout_limiter


def reset_checkout_limiter() -> None:
    """Drop the limiter; the next request builds a fresh one from settings."""
    global _checkout_limiter
    _checkout_limiter = None


def enforce_checkout_rate_limit(request: Request) -> None:
    """FastAPI dependency: reject with 429 before any business logic runs."""
    key = request.client.host if request.client else "unknown"
    limiter = get_checkout_limiter()
    if not limiter.check(key):
        retry_after = max(limiter.reset_in(key), 1)
        logger.warning("checkout_rate_limited", client=key, path=request.url.path, retry_after=retry_after)
        raise RateLimited("Too many checkout attempts, please try again later", retry_after=retry_after)
