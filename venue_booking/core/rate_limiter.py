"""
Sliding window rate limiter.

Keeps a deque of request timestamps per key (user id or client IP) and
rejects once ``max_requests`` fall inside the window. State is per process,
which is enough for abuse prevention on booking creation and the agent chat.
"""

import time
import logging
import math
import threading
from collections import deque
from typing import Dict, Optional

from venue_booking.core.config import get_settings
from venue_booking.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)
settings = get_settings()


class RateLimiter:
    def __init__(self, name: str, max_requests: int, window_seconds: float = 60.0):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, deque] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, now: float) -> deque:
        window = self._windows.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()
        return window

    def is_allowed(self, key: str) -> bool:
        """Record a request for ``key`` if it fits in the window."""
        with self._lock:
            now = time.time()
            window = self._prune(key, now)
            if len(window) < self.max_requests:
                window.append(now)
                return True
            logger.debug(
                f"Rate limited key '{key}' in limiter '{self.name}': "
                f"{len(window)}/{self.max_requests} requests in window"
            )
            return False

    def get_wait_time(self, key: str) -> float:
        """Seconds until the oldest request in the window expires."""
        with self._lock:
            window = self._prune(key, time.time())
            if len(window) < self.max_requests:
                return 0.0
            return max(0.0, window[0] + self.window_seconds - time.time())

    def check(self, key: str) -> None:
        """Raise RateLimitError with a Retry-After hint when ``key`` is over the limit."""
        if not self.is_allowed(key):
            retry_after = max(1, math.ceil(self.get_wait_time(key)))
            raise RateLimitError(retry_after=retry_after)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key:
                self._windows.pop(key, None)
            else:
                self._windows.clear()


booking_rate_limiter = RateLimiter(
    "booking_create", max_requests=settings.BOOKING_RATE_LIMIT_PER_MINUTE
)

agent_rate_limiter = RateLimiter(
    "venue_agent", max_requests=settings.AGENT_RATE_LIMIT_PER_MINUTE
)
