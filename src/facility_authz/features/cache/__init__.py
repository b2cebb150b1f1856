"""Cache feature for facility-authz.

Feature-First architecture with Redis and in-memory cache support:
- entities/: Cache protocols
- services/: The namespaced authorization cache
- adapters/: Redis and in-memory cache implementations
"""

from .entities.protocols import CacheBackend
from .services.cache_service import AuthzCache, create_cache
from .adapters.memory_adapter import MemoryCacheAdapter
from .adapters.redis_adapter import RedisCacheAdapter

__all__ = [
    "CacheBackend",
    "AuthzCache",
    "create_cache",
    "MemoryCacheAdapter",
    "RedisCacheAdapter",
]
