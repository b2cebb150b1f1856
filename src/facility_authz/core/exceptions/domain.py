"""Domain-specific exceptions for facility-authz.

Only ConfigurationError is allowed to halt the calling process. Every other
error here is either converted into a structured result or raised from an
administrative mutation with its originating message attached.
"""

from typing import Any, Dict, Optional

from .base import AuthzError


class ConfigurationError(AuthzError):
    """Raised when a configuration document is missing or malformed."""

    def __init__(
        self,
        message: str,
        unit: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "CONFIGURATION_ERROR", details)
        self.unit = unit
        if unit:
            self.details["unit"] = unit


class ValidationError(AuthzError):
    """Raised when call parameters are missing or invalid."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "VALIDATION_ERROR")
        if field:
            self.details["field"] = field


class UserContextError(AuthzError):
    """Raised when a user or their context cannot be resolved."""

    def __init__(self, message: str = "Invalid user context", user_id: Optional[str] = None):
        super().__init__(message, "USER_CONTEXT_ERROR")
        if user_id:
            self.details["user_id"] = user_id


class LimitExceededError(AuthzError):
    """Raised when a membership would exceed the per-user team limit."""

    def __init__(self, limit: int, user_id: Optional[str] = None, current: Optional[int] = None):
        super().__init__(
            f"User cannot belong to more than {limit} teams",
            "LIMIT_EXCEEDED",
            {"limit": limit},
        )
        self.limit = limit
        if user_id:
            self.details["user_id"] = user_id
        if current is not None:
            self.details["current"] = current


class TeamOperationError(AuthzError):
    """Raised when the directory fails during a team mutation."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, "TEAM_OPERATION_FAILED")
        if operation:
            self.details["operation"] = operation
        if status_code is not None:
            self.details["status_code"] = status_code


class EvaluationError(AuthzError):
    """Unexpected failure while evaluating a permission rule."""

    def __init__(self, message: str):
        super().__init__(message, "EVALUATION_ERROR")
