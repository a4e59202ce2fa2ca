"""Mini README: In-memory sliding-window rate limiter.

Each limiter instance tracks attempt timestamps per key (normally the client
address) and lives on ``app.state``; nothing here is module-global. Counts
are per process, so several server workers each enforce their own window.
"""

from __future__ import annotations

import math
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict

from ..errors import RateLimitExceeded
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


class RateLimiter:
    """Allow ``max_attempts`` hits per ``window_seconds`` for each key."""

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        *,
        message: str = "Too many attempts. Please try again later.",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def hit(self, key: str) -> None:
        """Record an attempt for ``key`` or raise ``RateLimitExceeded``."""

        now = self._clock()
        with self._lock:
            window = self._hits.setdefault(key, deque())
            while window and now - window[0] >= self.window_seconds:
                window.popleft()
            if len(window) >= self.max_attempts:
                retry_after = math.ceil(self.window_seconds - (now - window[0]))
                LOGGER.warning("Rate limit exceeded for %s", key)
                raise RateLimitExceeded(self.message, retry_after_seconds=max(retry_after, 1))
            window.append(now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)
