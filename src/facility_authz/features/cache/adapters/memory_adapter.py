"""Memory cache backend adapter for facility-authz."""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..entities.protocols import Clock

logger = logging.getLogger(__name__)


@dataclass
class MemoryCacheEntry:
    """Memory cache entry with metadata."""
    value: Any
    created_at: float
    expires_at: Optional[float] = None
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        """Check if entry is expired at the given time."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at


@dataclass
class MemoryCacheStats:
    """Counters kept by the memory adapter."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0

    def to_dict(self) -> Dict[str, Any]:
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests) if total_requests > 0 else 0.0
        return {
            "total_hits": self.hits,
            "total_misses": self.misses,
            "total_sets": self.sets,
            "total_deletes": self.deletes,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "hit_rate": hit_rate,
            "total_requests": total_requests,
        }


class MemoryCacheAdapter:
    """Instance-local TTL cache.

    Entries expire passively on read. When max_entries is exceeded the
    oldest inserted entry is evicted. The clock is injectable so tests can
    advance time without sleeping.
    """

    def __init__(
        self,
        default_ttl: Optional[float] = None,
        max_entries: int = 1000,
        clock: Optional[Clock] = None,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._store: "OrderedDict[str, MemoryCacheEntry]" = OrderedDict()
        self._stats = MemoryCacheStats()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._store[key]
            self._stats.expirations += 1
            self._stats.misses += 1
            return None

        entry.access_count += 1
        self._stats.hits += 1
        return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        effective_ttl = ttl if ttl is not None else self.default_ttl
        expires_at = now + effective_ttl if effective_ttl and effective_ttl > 0 else None

        self._store.pop(key, None)
        self._store[key] = MemoryCacheEntry(value=value, created_at=now, expires_at=expires_at)
        self._stats.sets += 1

        while len(self._store) > self.max_entries:
            evicted_key, _ = self._store.popitem(last=False)
            self._stats.evictions += 1
            logger.debug(f"Evicted cache entry {evicted_key}")

    async def delete(self, key: str) -> bool:
        existed = self._store.pop(key, None) is not None
        if existed:
            self._stats.deletes += 1
        return existed

    async def delete_prefix(self, prefix: str) -> int:
        keys = [key for key in self._store if key.startswith(prefix)]
        for key in keys:
            del self._store[key]
        self._stats.deletes += len(keys)
        return len(keys)

    async def clear(self) -> None:
        self._store.clear()

    async def size(self) -> int:
        now = self._clock()
        return sum(1 for entry in self._store.values() if not entry.is_expired(now))

    async def stats(self) -> Dict[str, Any]:
        data = self._stats.to_dict()
        data["backend"] = "memory"
        data["size"] = await self.size()
        data["max_entries"] = self.max_entries
        return data
