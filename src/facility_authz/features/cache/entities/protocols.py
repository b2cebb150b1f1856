"""Cache protocols for facility-authz.

Backends store arbitrary Python values under string keys with a TTL.
Coherency across process instances is bounded by the TTL only.
"""

from abc import abstractmethod
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

Clock = Callable[[], float]


@runtime_checkable
class CacheBackend(Protocol):
    """Protocol for cache backend implementations."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value by key, None on miss or expiry."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Set key-value pair with optional TTL in seconds."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key and return whether it existed."""
        ...

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix, return the count."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Clear all cache entries."""
        ...

    @abstractmethod
    async def size(self) -> int:
        """Get cache size (number of live keys)."""
        ...

    @abstractmethod
    async def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        ...
