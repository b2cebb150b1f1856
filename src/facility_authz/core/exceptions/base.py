"""Base exceptions for facility-authz.

All exceptions in the library inherit from AuthzError and carry an error
code and a details mapping so they can be rendered into structured results
without leaking stack traces.
"""

from typing import Any, Dict, Optional


class AuthzError(Exception):
    """Base exception for all facility-authz errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }
