"""Active configuration tables.

A ConfigurationSnapshot holds every validated document together with the
lookup tables derived from them. Snapshots are immutable; a reload builds a
new snapshot and the loader swaps its reference in a single assignment.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from ....config.constants import (
    ConfigurationUnit,
    Operation,
    PermissionScope,
    Role,
    TeamManagementOperation,
    TeamRole,
)
from ...teams.entities.team import TeamNamingPolicy
from .documents import (
    CollectionPermissionsDocument,
    CollectionRule,
    FacilityTeamMappingDocument,
    RoleHierarchyDocument,
    TeamStructureDocument,
)

DOCUMENT_MODELS = {
    ConfigurationUnit.COLLECTION_PERMISSIONS: CollectionPermissionsDocument,
    ConfigurationUnit.ROLE_HIERARCHY: RoleHierarchyDocument,
    ConfigurationUnit.TEAM_STRUCTURE: TeamStructureDocument,
    ConfigurationUnit.FACILITY_TEAM_MAPPING: FacilityTeamMappingDocument,
}

_SCOPE_WIDTH = {
    PermissionScope.FACILITY_ONLY: 1,
    PermissionScope.ALL_FACILITIES: 2,
}


@dataclass(frozen=True)
class PermissionRule:
    """Which roles may perform one operation on one resource, and where."""
    resource: str
    operation: Operation
    role_scopes: Mapping[Role, PermissionScope]

    @property
    def allowed_roles(self) -> FrozenSet[Role]:
        return frozenset(self.role_scopes)

    def scope_for(self, roles: Iterable[Role]) -> Optional[PermissionScope]:
        """Widest scope granted to any of the roles, None if none is allowed."""
        scopes = [self.role_scopes[role] for role in roles if role in self.role_scopes]
        if not scopes:
            return None
        return max(scopes, key=lambda scope: _SCOPE_WIDTH[scope])


@dataclass(frozen=True)
class TeamMappings:
    """Team policy derived from team-structure and facility-team-mapping."""
    naming: TeamNamingPolicy
    team_roles: Tuple[TeamRole, ...]
    max_teams_per_user: int
    management_rules: Mapping[TeamManagementOperation, FrozenSet[TeamRole]]
    default_team_role: TeamRole = TeamRole.MEMBER
    auto_create: bool = True


def _freeze(mapping: Dict) -> Mapping:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """Validated documents plus derived lookup tables."""
    documents: Mapping[ConfigurationUnit, Any]
    role_hierarchy: Mapping[Role, int]
    can_manage: Mapping[Role, FrozenSet[Role]]
    permission_lookup_tables: Mapping[Tuple[str, Operation], PermissionRule]
    team_mappings: TeamMappings
    facility_scope_mappings: Mapping[str, CollectionRule]
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(cls, documents: Mapping[ConfigurationUnit, Any]) -> "ConfigurationSnapshot":
        """Derive every lookup table from a complete set of documents."""
        permissions: CollectionPermissionsDocument = documents[ConfigurationUnit.COLLECTION_PERMISSIONS]
        hierarchy: RoleHierarchyDocument = documents[ConfigurationUnit.ROLE_HIERARCHY]
        structure: TeamStructureDocument = documents[ConfigurationUnit.TEAM_STRUCTURE]
        mapping: FacilityTeamMappingDocument = documents[ConfigurationUnit.FACILITY_TEAM_MAPPING]

        role_scopes: Dict[Tuple[str, Operation], Dict[Role, PermissionScope]] = {}
        for role, permission_set in permissions.role_permissions.items():
            for resource, collection in permission_set.collections.items():
                for operation in collection.operations:
                    role_scopes.setdefault((resource, operation), {})[role] = collection.scope

        lookup = {
            key: PermissionRule(resource=key[0], operation=key[1], role_scopes=_freeze(scopes))
            for key, scopes in role_scopes.items()
        }

        naming = TeamNamingPolicy(
            facility_prefix=structure.team_naming.facility_prefix,
            facility_suffix=structure.team_naming.facility_suffix,
            global_admin_team=structure.team_naming.global_admin_team,
        )
        team_mappings = TeamMappings(
            naming=naming,
            team_roles=tuple(structure.team_roles),
            max_teams_per_user=structure.max_teams_per_user,
            management_rules=_freeze({
                operation: frozenset(rule.allowed_team_roles)
                for operation, rule in structure.team_management_rules.items()
            }),
            default_team_role=mapping.facility_team_defaults.default_team_role,
            auto_create=mapping.facility_team_defaults.auto_create,
        )

        return cls(
            documents=_freeze(dict(documents)),
            role_hierarchy=_freeze({role: entry.level for role, entry in hierarchy.role_hierarchy.items()}),
            can_manage=_freeze({
                role: frozenset(entry.can_manage) for role, entry in hierarchy.role_hierarchy.items()
            }),
            permission_lookup_tables=_freeze(lookup),
            team_mappings=team_mappings,
            facility_scope_mappings=_freeze(dict(mapping.collection_rules)),
        )

    def with_document(self, unit: ConfigurationUnit, document: Any) -> "ConfigurationSnapshot":
        """New snapshot with one document replaced and all tables rebuilt."""
        documents = dict(self.documents)
        documents[unit] = document
        return ConfigurationSnapshot.build(documents)

    # Lookups

    def get_rule(self, resource: str, operation: Operation) -> Optional[PermissionRule]:
        return self.permission_lookup_tables.get((resource, operation))

    @property
    def resources(self) -> Tuple[str, ...]:
        return tuple(sorted({resource for resource, _ in self.permission_lookup_tables}))

    def is_facility_scoped(self, resource: str) -> bool:
        rule = self.facility_scope_mappings.get(resource)
        return rule.facility_scoped if rule else True

    def is_audit_required(self, resource: str) -> bool:
        rule = self.facility_scope_mappings.get(resource)
        return rule.audit_required if rule else False

    def permissions_for_roles(self, roles: Iterable[Role]) -> Dict[str, Dict[str, Any]]:
        """Resource -> {operations, scope} for everything the roles may do."""
        roles = list(roles)
        result: Dict[str, Dict[str, Any]] = {}
        for (resource, operation), rule in sorted(
            self.permission_lookup_tables.items(), key=lambda item: (item[0][0], item[0][1].value)
        ):
            scope = rule.scope_for(roles)
            if scope is None:
                continue
            entry = result.setdefault(resource, {"operations": [], "scope": scope.value})
            entry["operations"].append(operation.value)
            # A resource reports its widest scope
            if _SCOPE_WIDTH[scope] > _SCOPE_WIDTH[PermissionScope(entry["scope"])]:
                entry["scope"] = scope.value
        return result

    def full_permission_map(self) -> Dict[str, Dict[str, Any]]:
        """Every operation on every resource, across all facilities."""
        result: Dict[str, Dict[str, Any]] = {}
        for resource, operation in sorted(
            self.permission_lookup_tables, key=lambda key: (key[0], key[1].value)
        ):
            entry = result.setdefault(
                resource, {"operations": [], "scope": PermissionScope.ALL_FACILITIES.value}
            )
            entry["operations"].append(operation.value)
        return result

    def allowed_team_roles(self, operation: TeamManagementOperation) -> FrozenSet[TeamRole]:
        return self.team_mappings.management_rules.get(operation, frozenset())
