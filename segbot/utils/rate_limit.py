from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable, Hashable


class SlidingWindowRateLimiter:
    """Per-user admission control over a sliding time window.

    Each key keeps the timestamps of its admitted requests. A rejected
    request is not recorded, so a client hammering a button does not extend
    its own penalty.
    """

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: dict[Hashable, deque[float]] = {}

    def _prune(self, stamps: deque[float], now: float) -> None:
        while stamps and now - stamps[0] >= self.window_seconds:
            stamps.popleft()

    def admit(self, key: Hashable) -> bool:
        now = self._clock()
        stamps = self._requests.setdefault(key, deque())
        self._prune(stamps, now)
        if len(stamps) >= self.limit:
            return False
        stamps.append(now)
        return True

    def sweep(self, now: float | None = None) -> int:
        """Drop keys whose window emptied; returns how many were removed."""
        current = self._clock() if now is None else now
        removed = 0
        for key in list(self._requests):
            stamps = self._requests[key]
            self._prune(stamps, current)
            if not stamps:
                del self._requests[key]
                removed += 1
        return removed

    @property
    def tracked_users(self) -> int:
        return len(self._requests)
