"""Exception hierarchy for facility-authz."""

from .base import AuthzError
from .domain import (
    ConfigurationError,
    ValidationError,
    UserContextError,
    LimitExceededError,
    TeamOperationError,
    EvaluationError,
)
from .infrastructure import DirectoryError, CacheError

__all__ = [
    "AuthzError",
    "ConfigurationError",
    "ValidationError",
    "UserContextError",
    "LimitExceededError",
    "TeamOperationError",
    "EvaluationError",
    "DirectoryError",
    "CacheError",
]
