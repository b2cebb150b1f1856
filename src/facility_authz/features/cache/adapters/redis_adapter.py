"""Redis cache backend adapter for facility-authz.

Gives several engine instances one shared cache. Coherency is still bounded
by the TTL: nothing is broadcast to other instances on invalidation besides
the shared key deletion itself.
"""

import logging
import math
import pickle
import re
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from ....core.exceptions import CacheError

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: str) -> str:
    """Escape SCAN MATCH metacharacters so value matches only itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisCacheAdapter:
    """Cache backend on top of a redis.asyncio client."""

    def __init__(
        self,
        client: "redis.Redis",
        default_ttl: Optional[float] = None,
        namespace: str = "authz:",
    ):
        self.client = client
        self.default_ttl = default_ttl
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, default_ttl: Optional[float] = None, namespace: str = "authz:") -> "RedisCacheAdapter":
        """Build an adapter from a redis:// URL."""
        return cls(redis.from_url(url), default_ttl=default_ttl, namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"Redis get error for key {key}: {e}")
        if raw is None:
            return None
        return pickle.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        effective_ttl = ttl if ttl is not None else self.default_ttl
        try:
            await self.client.set(
                self._key(key),
                pickle.dumps(value),
                ex=max(1, math.ceil(effective_ttl)) if effective_ttl and effective_ttl > 0 else None,
            )
        except RedisError as e:
            raise CacheError(f"Redis set error for key {key}: {e}")

    async def delete(self, key: str) -> bool:
        try:
            return await self.client.delete(self._key(key)) > 0
        except RedisError as e:
            raise CacheError(f"Redis delete error for key {key}: {e}")

    async def delete_prefix(self, prefix: str) -> int:
        """Delete keys under prefix using SCAN so the server is never blocked."""
        deleted = 0
        try:
            batch = []
            async for key in self.client.scan_iter(match=f"{escape_glob(self._key(prefix))}*"):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        except RedisError as e:
            raise CacheError(f"Redis delete prefix error for {prefix}: {e}")
        return deleted

    async def clear(self) -> None:
        await self.delete_prefix("")

    async def size(self) -> int:
        count = 0
        try:
            async for _ in self.client.scan_iter(match=f"{escape_glob(self.namespace)}*"):
                count += 1
        except RedisError as e:
            raise CacheError(f"Redis size error: {e}")
        return count

    async def stats(self) -> Dict[str, Any]:
        return {
            "backend": "redis",
            "namespace": self.namespace,
            "size": await self.size(),
        }

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")
