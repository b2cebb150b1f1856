"""Team domain entities.

Teams come in two kinds: one team per facility and a single global admin
team. Team names on the directory are derived from a TeamRef by the
TeamNamingPolicy and parsed back into a TeamRef when read, so nothing
downstream matches on name strings.
"""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ....config.constants import TeamKind, TeamRole
from ...roles.role_model import highest_team_role, parse_team_role
from ....core.exceptions import ValidationError

_TEAM_ID_MAX_LENGTH = 36
_TEAM_ID_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True)
class TeamRef:
    """Structured reference to a team: its kind and, for facility teams, the facility."""
    kind: TeamKind
    facility_id: Optional[str] = None

    def __post_init__(self):
        if self.kind == TeamKind.FACILITY and not self.facility_id:
            raise ValidationError("Facility team reference requires a facility id", field="facility_id")
        if self.kind == TeamKind.GLOBAL_ADMIN and self.facility_id is not None:
            raise ValidationError("Global admin team has no facility", field="facility_id")

    @classmethod
    def facility(cls, facility_id: str) -> "TeamRef":
        return cls(TeamKind.FACILITY, str(facility_id))

    @classmethod
    def global_admin(cls) -> "TeamRef":
        return cls(TeamKind.GLOBAL_ADMIN)

    @property
    def is_facility_team(self) -> bool:
        return self.kind == TeamKind.FACILITY

    @property
    def is_global_admin_team(self) -> bool:
        return self.kind == TeamKind.GLOBAL_ADMIN


@dataclass(frozen=True)
class TeamNamingPolicy:
    """Maps team references to directory names and ids and back."""
    facility_prefix: str = "facility-"
    facility_suffix: str = "-team"
    global_admin_team: str = "global-admin-team"

    def team_name(self, ref: TeamRef) -> str:
        if ref.is_global_admin_team:
            return self.global_admin_team
        return f"{self.facility_prefix}{ref.facility_id}{self.facility_suffix}"

    def facility_team_name(self, facility_id: str) -> str:
        return self.team_name(TeamRef.facility(facility_id))

    def team_id(self, ref: TeamRef) -> str:
        """Deterministic directory id for a team.

        Two callers creating the same team race on the same id, so the
        directory reports a conflict instead of creating a duplicate.
        """
        candidate = _TEAM_ID_UNSAFE.sub("_", self.team_name(ref))
        if len(candidate) <= _TEAM_ID_MAX_LENGTH:
            return candidate
        digest = hashlib.sha1(candidate.encode("utf-8")).hexdigest()
        return f"team_{digest[:_TEAM_ID_MAX_LENGTH - 5]}"

    def parse(self, name: Optional[str]) -> Optional[TeamRef]:
        """Parse a directory team name, None for teams the engine does not own."""
        if not name:
            return None
        if name == self.global_admin_team:
            return TeamRef.global_admin()
        if (
            name.startswith(self.facility_prefix)
            and name.endswith(self.facility_suffix)
            and len(name) > len(self.facility_prefix) + len(self.facility_suffix)
        ):
            return TeamRef.facility(name[len(self.facility_prefix):-len(self.facility_suffix)])
        return None


def _parse_roles(values: Any) -> Tuple[TeamRole, ...]:
    roles = []
    for value in values or []:
        try:
            roles.append(parse_team_role(value))
        except ValidationError:
            continue
    return tuple(roles)


@dataclass
class Team:
    """Team as stored in the directory."""
    id: str
    name: str
    ref: TeamRef
    roles: Tuple[TeamRole, ...] = (TeamRole.OWNER, TeamRole.ADMIN, TeamRole.MEMBER)
    total_members: int = 0

    @property
    def facility_id(self) -> Optional[str]:
        return self.ref.facility_id

    @classmethod
    def from_record(cls, record: Dict[str, Any], naming: TeamNamingPolicy) -> Optional["Team"]:
        """Build a Team from a directory record, None when the name is foreign."""
        ref = naming.parse(record.get("name"))
        if ref is None:
            return None
        return cls(
            id=record["$id"],
            name=record["name"],
            ref=ref,
            roles=_parse_roles(record.get("roles")) or (TeamRole.OWNER, TeamRole.ADMIN, TeamRole.MEMBER),
            total_members=record.get("total", 0),
        )


@dataclass
class TeamMembership:
    """A (team, user, team roles) association."""
    id: str
    team_id: str
    user_id: str
    roles: Tuple[TeamRole, ...]
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    @property
    def primary_role(self) -> TeamRole:
        return highest_team_role(self.roles) or TeamRole.MEMBER

    def has_role(self, team_role: TeamRole) -> bool:
        return team_role in self.roles

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TeamMembership":
        return cls(
            id=record["$id"],
            team_id=record["teamId"],
            user_id=record["userId"],
            roles=_parse_roles(record.get("roles")),
            user_name=record.get("userName"),
            user_email=record.get("userEmail"),
        )


@dataclass
class UserTeam:
    """One of a user's team memberships, resolved against its team."""
    team_id: str
    team_name: str
    ref: TeamRef
    roles: Tuple[TeamRole, ...]
    membership_id: str

    @property
    def facility_id(self) -> Optional[str]:
        return self.ref.facility_id

    @property
    def is_facility_team(self) -> bool:
        return self.ref.is_facility_team

    @property
    def is_global_admin_team(self) -> bool:
        return self.ref.is_global_admin_team

    @property
    def team_role(self) -> TeamRole:
        return highest_team_role(self.roles) or TeamRole.MEMBER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "facilityId": self.facility_id,
            "roles": [role.value for role in self.roles],
            "isFacilityTeam": self.is_facility_team,
            "isGlobalAdminTeam": self.is_global_admin_team,
        }


@dataclass
class FacilityTeamMember:
    """Member of a facility team with profile fields from the directory."""
    user_id: str
    primary_role: TeamRole
    roles: Tuple[TeamRole, ...]
    membership_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "primaryRole": self.primary_role.value,
            "roles": [role.value for role in self.roles],
            "membershipId": self.membership_id,
            "name": self.name,
            "email": self.email,
            **self.profile,
        }


@dataclass
class AssignmentResult:
    """Outcome of assigning a user to a team."""
    success: bool
    user_id: str
    facility_id: Optional[str]
    team_id: Optional[str] = None
    team_role: Optional[TeamRole] = None
    created: bool = False
    updated: bool = False
    message: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "userId": self.user_id,
            "facilityId": self.facility_id,
            "teamId": self.team_id,
            "teamRole": self.team_role.value if self.team_role else None,
            "created": self.created,
            "updated": self.updated,
            "message": self.message,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RemovalResult:
    """Outcome of removing a user from a team."""
    success: bool
    message: str
    user_id: str
    facility_id: Optional[str] = None
    team_id: Optional[str] = None
    removed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "userId": self.user_id,
            "facilityId": self.facility_id,
            "teamId": self.team_id,
            "removed": self.removed,
        }


@dataclass
class BatchAssignmentResult:
    """Outcome of assigning one user to several facilities."""
    success: bool
    user_id: str
    results: List[AssignmentResult] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "userId": self.user_id,
            "results": [result.to_dict() for result in self.results],
            "errors": self.errors,
            "successCount": self.success_count,
            "errorCount": self.error_count,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class MoveResult:
    """Outcome of moving a user between two facility teams.

    The two halves are separate directory calls. When partial_failure is set
    the caller retries whichever half did not happen.
    """
    user_id: str
    from_facility_id: str
    to_facility_id: str
    assigned: bool = False
    removed: bool = False
    errors: List[str] = field(default_factory=list)
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.assigned and self.removed

    @property
    def partial_failure(self) -> bool:
        return self.assigned != self.removed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "userId": self.user_id,
            "fromFacilityId": self.from_facility_id,
            "toFacilityId": self.to_facility_id,
            "assigned": self.assigned,
            "removed": self.removed,
            "partialFailure": self.partial_failure,
            "errors": self.errors,
        }
