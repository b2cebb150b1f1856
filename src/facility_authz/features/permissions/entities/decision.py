"""Permission evaluation results.

A Decision distinguishes "denied by policy" from "failed to evaluate":
both have allowed=False, but only the latter carries an error message.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ....config.constants import AccessType, PermissionScope, Role, TeamRole
from ...roles.role_model import ROLE_LEVELS
from ...teams.entities.team import UserTeam


class DecisionOutcome(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    ERROR = "error"


@dataclass(frozen=True)
class Decision:
    """Allow/deny result of a permission check."""
    outcome: DecisionOutcome
    reason: str
    scope: Optional[PermissionScope] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def allowed(self) -> bool:
        return self.outcome == DecisionOutcome.ALLOWED

    @property
    def is_error(self) -> bool:
        return self.outcome == DecisionOutcome.ERROR

    @classmethod
    def allow(
        cls,
        reason: str,
        scope: Optional[PermissionScope] = None,
        **details: Any,
    ) -> "Decision":
        return cls(DecisionOutcome.ALLOWED, reason, scope, dict(details))

    @classmethod
    def deny(cls, reason: str, **details: Any) -> "Decision":
        return cls(DecisionOutcome.DENIED, reason, None, dict(details))

    @classmethod
    def failed(cls, reason: str, error: str, **details: Any) -> "Decision":
        return cls(DecisionOutcome.ERROR, reason, None, dict(details), error)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "allowed": self.allowed,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "scope": self.scope.value if self.scope else None,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating access to one concrete resource."""
    valid: bool
    reason: str
    details: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "reason": self.reason,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class EffectivePermissions:
    """Resolved permission map of a user for one facility."""
    success: bool
    facility_id: Optional[str] = None
    access_type: Optional[AccessType] = None
    team_role: Optional[TeamRole] = None
    team_id: Optional[str] = None
    permissions: Mapping[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "facilityId": self.facility_id,
            "permissions": dict(self.permissions),
        }
        if self.access_type is not None:
            data["accessType"] = self.access_type.value
        if self.team_role is not None:
            data["teamRole"] = self.team_role.value
        if self.team_id is not None:
            data["teamId"] = self.team_id
        if self.reason is not None:
            data["reason"] = self.reason
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class UserContext:
    """Everything the evaluator needs to know about a user."""
    user_id: str
    roles: FrozenSet[Role]
    team_memberships: Tuple[UserTeam, ...] = ()

    @property
    def is_global_admin(self) -> bool:
        return any(team.is_global_admin_team for team in self.team_memberships)

    @property
    def global_admin_membership(self) -> Optional[UserTeam]:
        for team in self.team_memberships:
            if team.is_global_admin_team:
                return team
        return None

    @property
    def facility_ids(self) -> Tuple[str, ...]:
        return tuple(team.facility_id for team in self.team_memberships if team.is_facility_team)

    @property
    def facility_id(self) -> Optional[str]:
        """Home facility: the first facility team the user belongs to."""
        ids = self.facility_ids
        return ids[0] if ids else None

    @property
    def primary_role(self) -> Optional[Role]:
        if not self.roles:
            return None
        return max(self.roles, key=lambda role: ROLE_LEVELS[role])

    def facility_team(self, facility_id: Optional[str]) -> Optional[UserTeam]:
        if not facility_id:
            return None
        for team in self.team_memberships:
            if team.is_facility_team and team.facility_id == facility_id:
                return team
        return None


def _first_present(data: Mapping[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def extract_resource_facility_id(context: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Facility id embedded in the context's resource data."""
    if not context:
        return None
    resource_data = _first_present(context, "resource_data", "resourceData")
    if not isinstance(resource_data, Mapping):
        return None
    value = _first_present(resource_data, "facility_id", "facilityId")
    return str(value) if value is not None else None


def extract_facility_id(context: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Facility id from an explicit context key or from embedded resource data."""
    if not context:
        return None
    value = _first_present(context, "facility_id", "facilityId")
    if value is None:
        return extract_resource_facility_id(context)
    return str(value)


def conflicting_resource_facility(context: Optional[Mapping[str, Any]]) -> Optional[str]:
    """The embedded resource facility when it differs from the explicit one, else None."""
    resource_facility_id = extract_resource_facility_id(context)
    if resource_facility_id is None or resource_facility_id == extract_facility_id(context):
        return None
    return resource_facility_id
