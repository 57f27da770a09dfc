"""In-memory read-through cache for query results."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Awaitable, Callable, TypeVar

from cachetools import TTLCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Key prefixes, shared by readers and invalidators
REPORTS_PREFIX = "reports_"
STATS_PREFIX = "stats"
INVENTORY_PREFIX = "inventory"
LAST_PRICE_PREFIX = "last_price_"


class QueryCache:
    """TTL cache keyed by query parameters.

    Entries expire after a fixed TTL and are dropped early by prefix
    invalidation. Failed computations are not cached, and neither are
    results whose computation overlapped an invalidation.
    """

    def __init__(self, ttl_seconds: int = 60, max_size: int = 1000):
        self._cache: TTLCache = TTLCache(maxsize=max_size, ttl=ttl_seconds)
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        # Bumped on every invalidation
        self._generation = 0

    async def get(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for key, computing and storing it on a miss."""
        with self._lock:
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
            self._misses += 1
            generation = self._generation

        value = await compute()
        with self._lock:
            if generation == self._generation:
                self._cache[key] = value
            else:
                logger.debug("Not caching %r: invalidated while computing", key)
        return value

    def invalidate(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix. Returns the count."""
        with self._lock:
            self._generation += 1
            keys = [key for key in self._cache.keys() if key.startswith(prefix)]
            for key in keys:
                del self._cache[key]
        if keys:
            logger.debug("Invalidated %d cache entries with prefix %r", len(keys), prefix)
        return len(keys)

    def invalidate_many(self, *prefixes: str) -> int:
        return sum(self.invalidate(prefix) for prefix in prefixes)

    def clear(self) -> int:
        with self._lock:
            self._generation += 1
            count = len(self._cache)
            self._cache.clear()
        logger.info("Cleared %d entries from query cache", count)
        return count

    def stats(self) -> dict[str, Any]:
        """Cache statistics for monitoring."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "enabled": True,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 0.0,
                "size": len(self._cache),
                "max_size": self._cache.maxsize,
                "ttl_seconds": self._cache.ttl,
            }

    def close(self) -> None:
        """Release cached entries on shutdown."""
        self.clear()


class NullQueryCache(QueryCache):
    """Cache that never stores anything (caching disabled)."""

    def __init__(self):
        super().__init__(ttl_seconds=1, max_size=1)

    async def get(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        return await compute()

    def stats(self) -> dict[str, Any]:
        return {"enabled": False, "hits": 0, "misses": 0, "hit_rate": 0.0, "size": 0}
