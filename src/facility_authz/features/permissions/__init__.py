"""Permissions feature for facility-authz.

- entities/: Decision sum type, validation results and the user context
- services/: The permission evaluator
"""

from .entities import (
    Decision,
    DecisionOutcome,
    EffectivePermissions,
    UserContext,
    ValidationResult,
    conflicting_resource_facility,
    extract_facility_id,
    extract_resource_facility_id,
)
from .services import PermissionEvaluator

__all__ = [
    "Decision",
    "DecisionOutcome",
    "EffectivePermissions",
    "UserContext",
    "ValidationResult",
    "conflicting_resource_facility",
    "extract_facility_id",
    "extract_resource_facility_id",
    "PermissionEvaluator",
]
