"""Migration feature: moves legacy role attributes into team memberships."""

from .entities import MigrationReport
from .services import LegacyRoleMigrator

__all__ = ["MigrationReport", "LegacyRoleMigrator"]
