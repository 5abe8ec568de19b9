"""In-memory TTL cache for search responses."""

from __future__ import annotations

import json
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from recollect.constants.search import SEARCH_CACHE_MAX_ENTRIES, SEARCH_CACHE_TTL_SECONDS


@dataclass
class _Entry:
    payload: str
    expires_at: float


class SearchCache:
    """Stores JSON-serializable values with a time-to-live.

    Values are serialized on write and parsed on read, so callers never share
    mutable state with the cache. When full, the least recently used entry is
    evicted. The async interface matches an external key-value store, so a
    shared cache can replace it without touching callers.
    """

    def __init__(
        self,
        ttl_seconds: float = SEARCH_CACHE_TTL_SECONDS,
        max_entries: int = SEARCH_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize empty cache.

        Args:
            ttl_seconds: Default entry lifetime. Zero disables caching.
            max_entries: Maximum live entries.
            clock: Monotonic time source in seconds.
        """
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    async def get_json(self, key: str) -> Any | None:
        """Return the cached value for key, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return json.loads(entry.payload)

    async def set_json(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store value under key.

        Raises:
            TypeError: If value is not JSON-serializable.
        """
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        payload = json.dumps(value)
        self._entries[key] = _Entry(payload=payload, expires_at=self._clock() + ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    async def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix.

        Returns:
            Number of entries removed.
        """
        stale = [key for key in self._entries if key.startswith(prefix)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
