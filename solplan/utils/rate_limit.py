"""Simple per-client rate limiting."""

from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from typing import Deque, Dict

WINDOW_SECONDS = 60.0


class RateLimiter:
    """Track per-client requests within a rolling one-minute window."""

    def __init__(self, limit_per_minute: int) -> None:
        self.limit = limit_per_minute
        self._events: Dict[str, Deque[float]] = defaultdict(deque)

    def _prune(self, client_id: str, now: float) -> Deque[float]:
        events = self._events[client_id]
        window_start = now - WINDOW_SECONDS
        while events and events[0] <= window_start:
            events.popleft()
        return events

    def allow(self, client_id: str) -> bool:
        """Record a request and return whether it stays under the limit."""
        now = time.time()
        events = self._prune(client_id, now)

        if len(events) >= self.limit:
            return False

        events.append(now)
        return True

    def retry_after(self, client_id: str) -> int:
        """Seconds until ``client_id`` may send another request."""
        now = time.time()
        events = self._prune(client_id, now)
        if len(events) < self.limit or not events:
            return 0
        return max(1, math.ceil(events[0] + WINDOW_SECONDS - now))

    def purge_idle(self) -> int:
        """Forget clients with no requests in the current window."""
        now = time.time()
        idle = [key for key in list(self._events) if not self._prune(key, now)]
        for key in idle:
            del self._events[key]
        return len(idle)
