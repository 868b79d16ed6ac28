"""Fixed-window rate limiting keyed by caller identity."""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: int = 0


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Allows ``max_requests`` per ``window_seconds`` for each key.

    The first hit for a key opens its window; a hit after the window closes
    opens a fresh one. Expired windows are pruned lazily on access.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._prune(now)
                window = _Window(count=1, reset_at=now + self.window_seconds)
                self._windows[key] = window
                return RateLimitDecision(True, self.max_requests - 1, window.reset_at)

            if window.count >= self.max_requests:
                retry = max(1, math.ceil(window.reset_at - now))
                return RateLimitDecision(False, 0, window.reset_at, retry)

            window.count += 1
            return RateLimitDecision(True, self.max_requests - window.count, window.reset_at)

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for k in expired:
            del self._windows[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
