"""
In-memory fixed-window rate limiter keyed by client IP.

Counters live in process memory, so the budget applies per worker process.
Running several instances multiplies the effective limit; a shared store
(Redis with TTL keys) is needed if that matters.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

SWEEP_INTERVAL_SECONDS = 60.0


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


class RateLimiter:
    """Per-key request counter with a reset timestamp."""

    def __init__(
        self,
        max_requests: int = 200,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = Lock()
        self._last_sweep = 0.0

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            self._windows.pop(key, None)

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(allowed=True)

            if window.count >= self.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return RateLimitDecision(allowed=False, retry_after=retry_after)

            window.count += 1
            return RateLimitDecision(allowed=True)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._last_sweep = 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
