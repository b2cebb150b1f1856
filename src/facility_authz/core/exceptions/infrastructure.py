"""Infrastructure-specific exceptions for facility-authz.

Errors raised by the external directory/document store adapter and by cache
backends.
"""

from typing import Optional

from .base import AuthzError


class DirectoryError(AuthzError):
    """Raised when the external directory returns an error.

    The numeric status code is kept so callers can treat 404 as
    "does not exist yet" and 409 as "already exists".
    """

    def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
        super().__init__(message, "DIRECTORY_ERROR")
        self.status_code = status_code
        self.details["status_code"] = status_code
        if error_type:
            self.details["type"] = error_type

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409


class CacheError(AuthzError):
    """Base class for cache-related errors."""
    pass
