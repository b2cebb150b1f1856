"""Cache services."""

from .cache_service import AuthzCache, create_cache

__all__ = ["AuthzCache", "create_cache"]
