from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class _Window:
    count: int
    started_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int


class FixedWindowRateLimiter:
    """Per-key request counter that resets once a window has elapsed.

    State is in-process, so limits are per worker.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def check(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` if the window has room."""
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(count=0, started_at=now)
            self._windows[key] = window

        if window.count >= self.limit:
            return RateLimitResult(allowed=False, remaining=0)

        window.count += 1
        return RateLimitResult(allowed=True, remaining=self.limit - window.count)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)
