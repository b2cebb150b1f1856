"""Cache entities - protocols."""

from .protocols import CacheBackend, Clock

__all__ = [
    "CacheBackend",
    "Clock",
]
