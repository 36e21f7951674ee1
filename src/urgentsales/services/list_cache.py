"""
In-process cache for listing views (free / featured / premium / urgent).

Key-value with TTL, same contract as a query cache: get() returns None
on miss or expiry, invalidate() drops every key that starts with one of
the given prefixes so "properties" also clears "properties:page=2".

Usage:
    cache = ListViewCache(ttl=300)
    data = cache.get("/api/properties/featured")
    if data is None:
        data = await client.get_listings("featured")
    ...
    cache.invalidate("properties", "/api/properties/featured")
"""

import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class ListViewCache:
    def __init__(self, ttl: int = 300, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("Cache EXPIRED: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        lifetime = self.ttl if ttl is None else ttl
        self._entries[key] = (self._clock() + lifetime, value)

    def invalidate(self, *prefixes: str) -> int:
        """Drop every entry whose key starts with one of the prefixes."""
        doomed = [k for k in self._entries if any(k.startswith(p) for p in prefixes)]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.info("Invalidated %d cached list views", len(doomed))
        return len(doomed)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
