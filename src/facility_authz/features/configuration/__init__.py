"""Configuration feature for facility-authz.

Loads and validates the declarative permission documents:
- entities/: Document models, the immutable snapshot and the store protocol
- repositories/: File-backed store
- services/: The configuration loader with per-unit hot reload
"""

from .entities import ConfigurationSnapshot, ConfigurationStore, PermissionRule, TeamMappings
from .repositories import FileConfigurationStore
from .services import ConfigurationLoader

__all__ = [
    "ConfigurationSnapshot",
    "ConfigurationStore",
    "PermissionRule",
    "TeamMappings",
    "FileConfigurationStore",
    "ConfigurationLoader",
]
