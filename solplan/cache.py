"""In-process response cache with per-entry expiry."""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

LITE_TTL_SECONDS = 5 * 60
PRO_TTL_SECONDS = 60


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class ResponseCache(Generic[T]):
    """Fixed-capacity LRU map whose entries each carry their own TTL.

    None of the operations await, so under asyncio each call is atomic with
    respect to other requests touching the cache.
    """

    def __init__(self, max_size: int = 500) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()

    def get(self, key: str) -> Optional[T]:
        """Return a live value and mark it most recently used."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if time.monotonic() > entry.expires_at:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: T, ttl_seconds: float) -> None:
        """Insert or overwrite ``key``, evicting the oldest entry when full."""
        self._entries.pop(key, None)

        if len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)

        self._entries[key] = CacheEntry(
            value=value, expires_at=time.monotonic() + ttl_seconds
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


__all__ = ["CacheEntry", "LITE_TTL_SECONDS", "PRO_TTL_SECONDS", "ResponseCache"]
