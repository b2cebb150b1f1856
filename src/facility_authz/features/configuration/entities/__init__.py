"""Configuration entities - documents, snapshot and store protocol."""

from .config import ConfigurationSnapshot, DOCUMENT_MODELS, PermissionRule, TeamMappings
from .documents import (
    CollectionPermissionsDocument,
    CollectionRule,
    FacilityTeamMappingDocument,
    RoleHierarchyDocument,
    TeamStructureDocument,
)
from .protocols import ConfigurationStore

__all__ = [
    "ConfigurationSnapshot",
    "DOCUMENT_MODELS",
    "PermissionRule",
    "TeamMappings",
    "CollectionPermissionsDocument",
    "CollectionRule",
    "FacilityTeamMappingDocument",
    "RoleHierarchyDocument",
    "TeamStructureDocument",
    "ConfigurationStore",
]
