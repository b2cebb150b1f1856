"""Permission entities - decisions and user context."""

from .decision import (
    Decision,
    DecisionOutcome,
    EffectivePermissions,
    UserContext,
    ValidationResult,
    conflicting_resource_facility,
    extract_facility_id,
    extract_resource_facility_id,
)

__all__ = [
    "Decision",
    "DecisionOutcome",
    "EffectivePermissions",
    "UserContext",
    "ValidationResult",
    "conflicting_resource_facility",
    "extract_facility_id",
    "extract_resource_facility_id",
]
