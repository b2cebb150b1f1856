"""Migration services."""

from .legacy_migrator import LegacyRoleMigrator

__all__ = ["LegacyRoleMigrator"]
