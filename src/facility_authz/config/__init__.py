"""Configuration for facility-authz: constants, settings and logging."""

from .constants import (
    AccessType,
    CacheKeys,
    CacheTTL,
    ConfigurationUnit,
    Operation,
    PermissionScope,
    Role,
    TeamKind,
    TeamLimits,
    TeamManagementOperation,
    TeamRole,
)
from .settings import AuthzSettings, get_settings, DEFAULT_CONFIG_PATH
from .logging_config import LoggingConfig, LoggingOptions, setup_logging, get_logger

__all__ = [
    "AccessType",
    "CacheKeys",
    "CacheTTL",
    "ConfigurationUnit",
    "Operation",
    "PermissionScope",
    "Role",
    "TeamKind",
    "TeamLimits",
    "TeamManagementOperation",
    "TeamRole",
    "AuthzSettings",
    "get_settings",
    "DEFAULT_CONFIG_PATH",
    "LoggingConfig",
    "LoggingOptions",
    "setup_logging",
    "get_logger",
]
