"""Pydantic models for the configuration documents.

Each model validates one document as it is read from the configuration
store. Keys are camelCase on the wire.
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ....config.constants import Operation, PermissionScope, Role, TeamManagementOperation, TeamRole
from ...roles.role_model import ROLE_LEVELS


class DocumentModel(BaseModel):
    """Base for configuration documents."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class CollectionPermission(DocumentModel):
    operations: List[Operation] = Field(default_factory=list)
    scope: PermissionScope

    @field_validator("operations")
    @classmethod
    def validate_unique_operations(cls, v: List[Operation]) -> List[Operation]:
        if len(set(v)) != len(v):
            raise ValueError("operations must not contain duplicates")
        return v


class RolePermissionSet(DocumentModel):
    description: str = ""
    collections: Dict[str, CollectionPermission]


class CollectionPermissionsDocument(DocumentModel):
    """``collection-permissions``: role -> collection -> operations and scope."""

    role_permissions: Dict[Role, RolePermissionSet] = Field(alias="rolePermissions")

    @model_validator(mode="after")
    def validate_roles(self) -> "CollectionPermissionsDocument":
        missing = [role.value for role in Role if role not in self.role_permissions]
        if missing:
            raise ValueError(f"rolePermissions is missing roles: {', '.join(missing)}")
        return self


class RoleHierarchyEntry(DocumentModel):
    level: int = Field(ge=1)
    can_manage: List[Role] = Field(default_factory=list, alias="canManage")


class RoleHierarchyDocument(DocumentModel):
    """``role-hierarchy``: role -> level and manageable roles."""

    role_hierarchy: Dict[Role, RoleHierarchyEntry] = Field(alias="roleHierarchy")

    @model_validator(mode="after")
    def validate_levels(self) -> "RoleHierarchyDocument":
        missing = [role.value for role in Role if role not in self.role_hierarchy]
        if missing:
            raise ValueError(f"roleHierarchy is missing roles: {', '.join(missing)}")

        # Configured levels must order roles the same way the role model does
        ordered = sorted(Role, key=lambda r: ROLE_LEVELS[r])
        levels = [self.role_hierarchy[role].level for role in ordered]
        if any(lower >= higher for lower, higher in zip(levels, levels[1:])):
            raise ValueError("roleHierarchy levels must be strictly increasing from user to administrator")
        return self


class TeamNamingSection(DocumentModel):
    facility_prefix: str = Field(default="facility-", alias="facilityPrefix", min_length=1)
    facility_suffix: str = Field(default="-team", alias="facilitySuffix")
    global_admin_team: str = Field(default="global-admin-team", alias="globalAdminTeam", min_length=1)


class TeamManagementRule(DocumentModel):
    allowed_team_roles: List[TeamRole] = Field(default_factory=list, alias="allowedTeamRoles")


class TeamStructureDocument(DocumentModel):
    """``team-structure``: naming, team roles, limits and management rules."""

    team_naming: TeamNamingSection = Field(default_factory=TeamNamingSection, alias="teamNaming")
    team_roles: List[TeamRole] = Field(alias="teamRoles")
    max_teams_per_user: int = Field(alias="maxTeamsPerUser", ge=1)
    team_management_rules: Dict[TeamManagementOperation, TeamManagementRule] = Field(
        alias="teamManagementRules"
    )

    @field_validator("team_roles")
    @classmethod
    def validate_team_roles(cls, v: List[TeamRole]) -> List[TeamRole]:
        if set(v) != set(TeamRole):
            raise ValueError("teamRoles must enable owner, admin and member")
        return v


class FacilityTeamDefaults(DocumentModel):
    default_team_role: TeamRole = Field(default=TeamRole.MEMBER, alias="defaultTeamRole")
    auto_create: bool = Field(default=True, alias="autoCreate")


class CollectionRule(DocumentModel):
    facility_scoped: bool = Field(alias="facilityScoped")
    audit_required: bool = Field(default=False, alias="auditRequired")
    data_classification: str = Field(default="internal", alias="dataClassification")


class FacilityTeamMappingDocument(DocumentModel):
    """``facility-team-mapping``: facility team defaults and per-collection rules."""

    facility_team_defaults: FacilityTeamDefaults = Field(
        default_factory=FacilityTeamDefaults, alias="facilityTeamDefaults"
    )
    collection_rules: Dict[str, CollectionRule] = Field(alias="collectionRules")
