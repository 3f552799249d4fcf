"""Per-caller request throttling for the HTTP endpoints.

Keys look like "search:<ip>" or "metrics:<ip>".
"""

from __future__ import annotations

import math
import time
from collections import deque
from collections.abc import Callable


class RateLimiter:
    """Sliding-window limiter: at most ``rate`` calls per ``window_seconds`` per key.

    Example:
        limiter = RateLimiter(rate=30, window_seconds=60)
        allowed, retry_after = limiter.check("search:10.0.0.7")
    """

    def __init__(
        self,
        rate: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rate = rate
        self.window = window_seconds
        self._clock = clock
        self._calls: dict[str, deque[float]] = {}

    def _prune(self, key: str, now: float) -> deque[float]:
        calls = self._calls.setdefault(key, deque())
        while calls and calls[0] <= now - self.window:
            calls.popleft()
        return calls

    def check(self, key: str) -> tuple[bool, int]:
        """Record a call for key if allowed.

        Returns:
            (allowed, retry_after_seconds); retry_after is 0 when allowed
            and at least 1 otherwise.
        """
        now = self._clock()
        calls = self._prune(key, now)

        if len(calls) >= self.rate:
            retry_after = calls[0] + self.window - now
            return False, max(1, math.ceil(retry_after))

        calls.append(now)
        return True, 0

    def remaining(self, key: str) -> int:
        """Calls still allowed for key in the current window."""
        return max(0, self.rate - len(self._prune(key, self._clock())))

    def reset(self, key: str) -> None:
        self._calls.pop(key, None)
