"""Constants and enums for facility-authz.

This module defines the closed enums and default values used throughout
the authorization engine. String values match what the external directory
and the configuration documents use on the wire.
"""

from enum import Enum
from typing import Final


class CacheTTL:
    """Cache TTL values in seconds."""

    DEFAULT: Final[int] = 300          # 5 minutes
    TESTING: Final[int] = 2


class CacheKeys:
    """Cache key patterns for the authorization cache."""

    USER_TEAMS: Final[str] = "teams:user:{user_id}"
    USER_CONTEXT: Final[str] = "context:user:{user_id}"
    DECISION: Final[str] = "decision:{user_id}:{resource}:{operation}:{facility_id}"
    DECISION_USER_PREFIX: Final[str] = "decision:{user_id}:"
    DECISION_PREFIX: Final[str] = "decision:"
    TEAM_BY_NAME: Final[str] = "team:name:{name}"
    TEAM_BY_ID: Final[str] = "team:id:{team_id}"


class TeamLimits:
    """Membership limits."""

    MAX_TEAMS_PER_USER: Final[int] = 5


class AuditCollections:
    """Document store collections used for audit records."""

    ACCESS_AUDIT_LOG: Final[str] = "access_audit_log"
    ROLE_CHANGE_LOG: Final[str] = "role_change_log"


class Role(str, Enum):
    """Global user roles, ordered administrator > supervisor > doctor > user."""

    ADMINISTRATOR = "administrator"
    SUPERVISOR = "supervisor"
    DOCTOR = "doctor"
    USER = "user"


class TeamRole(str, Enum):
    """Authority within a single team, ordered owner > admin > member."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class TeamKind(str, Enum):
    """Kinds of teams known to the engine."""

    FACILITY = "facility-team"
    GLOBAL_ADMIN = "global-admin-team"


class PermissionScope(str, Enum):
    """Where a permission rule applies."""

    FACILITY_ONLY = "facility_only"
    ALL_FACILITIES = "all_facilities"


class Operation(str, Enum):
    """CRUD operations covered by the permission matrix."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class TeamManagementOperation(str, Enum):
    """Team management operations guarded by the evaluator."""

    ADD_MEMBER = "addMember"
    REMOVE_MEMBER = "removeMember"
    UPDATE_MEMBER_ROLE = "updateMemberRole"


class AccessType(str, Enum):
    """How access was granted."""

    GLOBAL_ADMIN = "global_admin"
    FACILITY_MEMBER = "facility_member"
    ALL_FACILITIES = "all_facilities"


class ConfigurationUnit(str, Enum):
    """Configuration documents loaded by the configuration loader."""

    COLLECTION_PERMISSIONS = "collection-permissions"
    ROLE_HIERARCHY = "role-hierarchy"
    TEAM_STRUCTURE = "team-structure"
    FACILITY_TEAM_MAPPING = "facility-team-mapping"
