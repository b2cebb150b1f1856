"""Identity and document directory integration."""

from .client import HttpDirectoryClient, query_equal, query_limit, query_offset
from .models import DirectoryUser, LEGACY_ROLE_LABELS

__all__ = [
    "HttpDirectoryClient",
    "query_equal",
    "query_limit",
    "query_offset",
    "DirectoryUser",
    "LEGACY_ROLE_LABELS",
]
