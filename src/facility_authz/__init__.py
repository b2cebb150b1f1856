"""Facility-Authz - facility-scoped role-based authorization engine.

Answers whether a user may perform an operation on a resource type, may
touch data of a facility, and may manage a facility team's memberships.
Users hold one global role and belong to facilities through teams.
"""

from .__version__ import __version__

from .config import (
    AccessType,
    AuthzSettings,
    ConfigurationUnit,
    Operation,
    PermissionScope,
    Role,
    TeamKind,
    TeamManagementOperation,
    TeamRole,
    get_settings,
    setup_logging,
)

from .core.exceptions import (
    AuthzError,
    CacheError,
    ConfigurationError,
    DirectoryError,
    EvaluationError,
    LimitExceededError,
    TeamOperationError,
    UserContextError,
    ValidationError,
)

from .features.audit import AuditRecord, DocumentStoreAuditLogger, RoleChangeRecord
from .features.cache import AuthzCache, create_cache
from .features.configuration import ConfigurationLoader, ConfigurationSnapshot, FileConfigurationStore
from .features.migration import LegacyRoleMigrator, MigrationReport
from .features.permissions import Decision, DecisionOutcome, PermissionEvaluator
from .features.teams import FacilityTeamManager, TeamRef
from .integrations.directory import DirectoryUser, HttpDirectoryClient
from .engine import AuthorizationEngine, create_engine

__all__ = [
    "__version__",
    # Configuration
    "AccessType",
    "AuthzSettings",
    "ConfigurationUnit",
    "Operation",
    "PermissionScope",
    "Role",
    "TeamKind",
    "TeamManagementOperation",
    "TeamRole",
    "get_settings",
    "setup_logging",
    # Exceptions
    "AuthzError",
    "CacheError",
    "ConfigurationError",
    "DirectoryError",
    "EvaluationError",
    "LimitExceededError",
    "TeamOperationError",
    "UserContextError",
    "ValidationError",
    # Services
    "AuditRecord",
    "DocumentStoreAuditLogger",
    "RoleChangeRecord",
    "AuthzCache",
    "create_cache",
    "ConfigurationLoader",
    "ConfigurationSnapshot",
    "FileConfigurationStore",
    "LegacyRoleMigrator",
    "MigrationReport",
    "Decision",
    "DecisionOutcome",
    "PermissionEvaluator",
    "FacilityTeamManager",
    "TeamRef",
    "DirectoryUser",
    "HttpDirectoryClient",
    # Engine
    "AuthorizationEngine",
    "create_engine",
]
