"""Permission evaluator.

Answers three questions for a protected operation: may the user perform the
operation on the resource type, may the user touch data of a facility, and
may the user manage memberships of a facility team.

Every public check returns a structured result. Policy denials and
evaluation failures are both non-allowing, but only failures carry an
error; no check lets an exception escape to the caller.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..entities.decision import (
    Decision,
    EffectivePermissions,
    UserContext,
    ValidationResult,
    conflicting_resource_facility,
    extract_facility_id,
)
from ...audit.entities.audit_record import AuditRecord
from ...audit.entities.protocols import AuditLogger
from ...cache.services.cache_service import AuthzCache
from ...configuration.entities.config import ConfigurationSnapshot
from ...configuration.services.configuration_loader import ConfigurationLoader
from ...roles.role_model import parse_team_role
from ...teams.entities.protocols import DirectoryClient
from ...teams.services.team_service import FacilityTeamManager
from ....config.constants import (
    AccessType,
    ConfigurationUnit,
    Operation,
    PermissionScope,
    TeamManagementOperation,
    TeamRole,
)
from ....core.exceptions import DirectoryError, EvaluationError, UserContextError, ValidationError
from ....integrations.directory.models import DirectoryUser

logger = logging.getLogger(__name__)

GLOBAL_ADMIN_ACCESS = "Global admin access"
NO_TEAM_MEMBERSHIPS = "User has no team memberships"
INVALID_USER_CONTEXT = "Invalid user context"
EVALUATION_ERROR = "Permission evaluation error"
CROSS_FACILITY_CONFLICT = "Cross-facility access denied: context facility does not match resource facility"


class PermissionEvaluator:
    """
    Evaluates permission checks against the active configuration.

    User contexts and check_permission decisions are cached in the shared
    AuthzCache. Membership writes through FacilityTeamManager invalidate the
    affected user; a configuration reload drops every cached decision.
    Error decisions are never cached.
    """

    def __init__(
        self,
        team_manager: FacilityTeamManager,
        configuration: ConfigurationLoader,
        cache: Optional[AuthzCache] = None,
        directory: Optional[DirectoryClient] = None,
        audit_logger: Optional[AuditLogger] = None,
        log_access_attempts: bool = False,
    ):
        self.team_manager = team_manager
        self.configuration = configuration
        self.cache = cache or team_manager.cache
        self.directory = directory or team_manager.directory
        self.audit_logger = audit_logger
        self.log_access_attempts = log_access_attempts
        configuration.add_reload_listener(self._on_configuration_reload)

    @property
    def snapshot(self) -> ConfigurationSnapshot:
        return self.configuration.snapshot

    async def _on_configuration_reload(self, unit: ConfigurationUnit, snapshot: ConfigurationSnapshot) -> None:
        dropped = await self.cache.invalidate_decisions()
        logger.info(f"Configuration unit {unit.value} reloaded, dropped {dropped} cached decisions")

    # User context

    async def resolve_user_context(self, user_id: str) -> UserContext:
        """
        Build the user's context from the directory, cache-aside.

        Raises:
            UserContextError: The user does not exist in the directory
            EvaluationError: The directory failed reading the user
            TeamOperationError: The directory failed reading memberships
        """
        if not user_id:
            raise UserContextError(user_id=user_id)

        cache_key = self.cache.user_context_key(user_id)
        generation = self.cache.generation(user_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            record = await self.directory.get_user(user_id)
        except DirectoryError as e:
            if e.is_not_found:
                raise UserContextError(user_id=user_id) from e
            raise EvaluationError(f"Could not resolve user {user_id}: {e.message}") from e

        user = DirectoryUser.from_record(record)
        user_teams = await self.team_manager.get_user_teams(user_id)
        context = UserContext(
            user_id=user_id,
            roles=user.roles,
            team_memberships=tuple(user_teams),
        )
        if self.cache.generation(user_id) == generation:
            await self.cache.set(cache_key, context)
        return context

    # Permission checks

    async def check_permission(
        self,
        user_id: str,
        resource: str,
        operation: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Decision:
        """Decide whether the user may perform the operation on the resource type.

        The facility is taken from the context (facility_id / facilityId, or
        the same keys inside resource_data). When both are given and differ,
        facility-scoped rules deny. Decisions are cached per
        (user, resource, operation, facility).
        """
        if not user_id or not resource or not operation:
            return Decision.deny("User ID, resource, and operation are required")

        operation = operation.value if isinstance(operation, Operation) else str(operation)
        facility_id = extract_facility_id(context)
        resource_facility_id = conflicting_resource_facility(context)
        cache_key = self.cache.decision_key(user_id, resource, operation, facility_id, resource_facility_id)
        generation = self.cache.generation(user_id)

        decision = await self.cache.get(cache_key)
        if decision is None:
            decision = await self._evaluate(user_id, resource, operation, facility_id, resource_facility_id)
            if not decision.is_error and self.cache.generation(user_id) == generation:
                await self.cache.set(cache_key, decision)
        else:
            logger.debug(f"Decision cache hit for {cache_key}")

        await self._record_access(user_id, resource, operation, decision, facility_id, context)
        return decision

    async def _evaluate(
        self,
        user_id: str,
        resource: str,
        operation: str,
        facility_id: Optional[str],
        resource_facility_id: Optional[str] = None,
    ) -> Decision:
        try:
            user_context = await self.resolve_user_context(user_id)
        except UserContextError:
            return Decision.deny(INVALID_USER_CONTEXT)
        except Exception as e:
            logger.error(f"Error resolving context for user {user_id}: {e}")
            return Decision.failed(EVALUATION_ERROR, error=str(e))

        try:
            return self._decide(user_context, resource, operation, facility_id, resource_facility_id)
        except Exception as e:
            logger.error(f"Error evaluating {operation} on {resource} for user {user_id}: {e}")
            return Decision.failed(EVALUATION_ERROR, error=str(e))

    def _decide(
        self,
        user_context: UserContext,
        resource: str,
        operation: str,
        facility_id: Optional[str],
        resource_facility_id: Optional[str] = None,
    ) -> Decision:
        role = user_context.primary_role.value if user_context.primary_role else None

        if not user_context.team_memberships:
            return Decision.deny(NO_TEAM_MEMBERSHIPS, role=role)

        if user_context.is_global_admin:
            admin_team = user_context.global_admin_membership
            return Decision.allow(
                GLOBAL_ADMIN_ACCESS,
                PermissionScope.ALL_FACILITIES,
                accessType=AccessType.GLOBAL_ADMIN.value,
                teamRole=admin_team.team_role.value,
                role=role,
            )

        try:
            rule = self.snapshot.get_rule(resource, Operation(operation))
        except ValueError:
            rule = None
        if rule is None:
            return Decision.deny("No matching permission found", role=role)

        scope = rule.scope_for(user_context.roles)
        if scope is None:
            return Decision.deny("Operation not allowed for role", role=role)

        membership = user_context.facility_team(facility_id)

        if scope == PermissionScope.FACILITY_ONLY:
            if not facility_id:
                return Decision.deny("Facility context required for facility-scoped operation", role=role)
            if resource_facility_id is not None:
                return Decision.deny(
                    CROSS_FACILITY_CONFLICT,
                    role=role,
                    facilityId=facility_id,
                    resourceFacilityId=resource_facility_id,
                )
            if membership is None:
                return Decision.deny(
                    "Cross-facility access denied: user is not a member of the facility team",
                    role=role,
                    facilityId=facility_id,
                    userFacilities=list(user_context.facility_ids),
                )
            return Decision.allow(
                "Facility team member",
                scope,
                accessType=AccessType.FACILITY_MEMBER.value,
                teamRole=membership.team_role.value,
                facilityId=facility_id,
                teamId=membership.team_id,
                role=role,
            )

        return Decision.allow(
            "Access granted across all facilities",
            scope,
            accessType=AccessType.ALL_FACILITIES.value,
            teamRole=membership.team_role.value if membership else None,
            facilityId=facility_id,
            role=role,
        )

    async def check_facility_access(self, user_id: str, facility_id: str) -> Decision:
        """Decide whether the user may touch data belonging to the facility."""
        if not user_id or not facility_id:
            return Decision.deny("User ID and facility ID are required")

        try:
            user_context = await self.resolve_user_context(user_id)
        except UserContextError:
            return Decision.deny(INVALID_USER_CONTEXT)
        except Exception as e:
            logger.error(f"Error checking facility access for user {user_id}: {e}")
            return Decision.failed(EVALUATION_ERROR, error=str(e))

        if user_context.is_global_admin:
            return Decision.allow(
                GLOBAL_ADMIN_ACCESS,
                PermissionScope.ALL_FACILITIES,
                accessType=AccessType.GLOBAL_ADMIN.value,
                facilityId=facility_id,
            )

        membership = user_context.facility_team(facility_id)
        if membership is None:
            return Decision.deny("User does not belong to facility team", facilityId=facility_id)

        return Decision.allow(
            "Facility team member",
            PermissionScope.FACILITY_ONLY,
            accessType=AccessType.FACILITY_MEMBER.value,
            facilityId=facility_id,
            teamRole=membership.team_role.value,
            teamId=membership.team_id,
        )

    async def check_team_management_permission(
        self,
        user_id: str,
        operation: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Decision:
        """Decide whether the user may manage memberships of a facility team.

        Global admins may perform every operation. Facility team members whose
        team role is allowed for the operation may perform it in their own
        facility, except that nobody below global admin can grant the owner
        role through updateMemberRole.
        """
        if not user_id or not operation:
            return Decision.deny("User ID and operation are required")

        context = context or {}
        facility_id = extract_facility_id(context)
        operation = operation.value if isinstance(operation, TeamManagementOperation) else str(operation)

        try:
            management_op = TeamManagementOperation(operation)
            allowed_roles = self.snapshot.allowed_team_roles(management_op)
        except ValueError:
            management_op, allowed_roles = None, frozenset()
        if management_op is None or not allowed_roles:
            decision = Decision.deny("Unknown team management operation", operation=operation)
            await self._record_access(user_id, "teams", operation, decision, facility_id, context)
            return decision

        try:
            user_context = await self.resolve_user_context(user_id)
            decision = self._decide_team_management(
                user_context,
                management_op,
                allowed_roles,
                facility_id,
                context,
                conflicting_resource_facility(context),
            )
        except UserContextError:
            decision = Decision.deny(INVALID_USER_CONTEXT)
        except Exception as e:
            logger.error(f"Error checking team management permission for user {user_id}: {e}")
            decision = Decision.failed(EVALUATION_ERROR, error=str(e))

        await self._record_access(user_id, "teams", operation, decision, facility_id, context)
        return decision

    def _decide_team_management(
        self,
        user_context: UserContext,
        operation: TeamManagementOperation,
        allowed_roles: frozenset,
        facility_id: Optional[str],
        context: Mapping[str, Any],
        resource_facility_id: Optional[str] = None,
    ) -> Decision:
        if not user_context.team_memberships:
            return Decision.deny(NO_TEAM_MEMBERSHIPS)

        if user_context.is_global_admin:
            return Decision.allow(
                GLOBAL_ADMIN_ACCESS,
                PermissionScope.ALL_FACILITIES,
                accessType=AccessType.GLOBAL_ADMIN.value,
                operation=operation.value,
            )

        if resource_facility_id is not None:
            return Decision.deny(
                CROSS_FACILITY_CONFLICT,
                operation=operation.value,
                facilityId=facility_id,
                resourceFacilityId=resource_facility_id,
            )

        membership = user_context.facility_team(facility_id)
        if membership is None or membership.team_role not in allowed_roles:
            return Decision.deny(
                "Insufficient permissions for team management operation",
                operation=operation.value,
                facilityId=facility_id,
            )

        if operation == TeamManagementOperation.UPDATE_MEMBER_ROLE and _requested_role(context) == TeamRole.OWNER:
            return Decision.deny(
                "Facility owners cannot promote users to owner role",
                operation=operation.value,
                facilityId=facility_id,
            )

        return Decision.allow(
            "Facility team owner can manage team members",
            PermissionScope.FACILITY_ONLY,
            accessType=AccessType.FACILITY_MEMBER.value,
            teamRole=membership.team_role.value,
            facilityId=facility_id,
            operation=operation.value,
        )

    async def validate_resource_access(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        resource_data: Optional[Mapping[str, Any]] = None,
    ) -> ValidationResult:
        """Check access to one concrete resource through its facility. Fails closed."""
        if not user_id or not resource_type or not resource_id:
            return ValidationResult(False, "User ID, resource type, and resource ID are required")

        facility_id = extract_facility_id(resource_data or {})
        if not facility_id:
            return ValidationResult(
                False,
                "Resource does not have facility information",
                {"resourceType": resource_type, "resourceId": resource_id},
            )

        decision = await self.check_facility_access(user_id, facility_id)
        details = {
            "resourceType": resource_type,
            "resourceId": resource_id,
            "facilityId": facility_id,
            **decision.details,
        }
        if not decision.allowed:
            details["reason"] = decision.reason
            if decision.error:
                details["error"] = decision.error
            return ValidationResult(False, "User cannot access resource facility", details)

        return ValidationResult(True, "Resource access validated", details)

    async def get_user_effective_permissions(self, user_id: str, facility_id: str) -> EffectivePermissions:
        """The user's permission map for one facility."""
        if not user_id or not facility_id:
            return EffectivePermissions(success=False, reason="User ID and facility ID are required")

        try:
            user_context = await self.resolve_user_context(user_id)
        except UserContextError:
            return EffectivePermissions(success=False, facility_id=facility_id, reason=INVALID_USER_CONTEXT)
        except Exception as e:
            logger.error(f"Error getting effective permissions for user {user_id}: {e}")
            return EffectivePermissions(
                success=False, facility_id=facility_id, reason=EVALUATION_ERROR, error=str(e)
            )

        if user_context.is_global_admin:
            admin_team = user_context.global_admin_membership
            return EffectivePermissions(
                success=True,
                facility_id=facility_id,
                access_type=AccessType.GLOBAL_ADMIN,
                team_role=admin_team.team_role,
                team_id=admin_team.team_id,
                permissions=self.snapshot.full_permission_map(),
            )

        if not user_context.team_memberships:
            return EffectivePermissions(success=False, facility_id=facility_id, reason=NO_TEAM_MEMBERSHIPS)

        membership = user_context.facility_team(facility_id)
        if membership is None:
            return EffectivePermissions(
                success=False,
                facility_id=facility_id,
                reason="User is not a member of the facility team",
            )

        return EffectivePermissions(
            success=True,
            facility_id=facility_id,
            access_type=AccessType.FACILITY_MEMBER,
            team_role=membership.team_role,
            team_id=membership.team_id,
            permissions=self.snapshot.permissions_for_roles(user_context.roles),
        )

    async def check_documents_access(
        self,
        user_id: str,
        resource: str,
        operation: str,
        documents: Sequence[Mapping[str, Any]],
    ) -> List[Decision]:
        """Check one operation against many documents; decisions keep the input order."""
        checks = [
            self.check_permission(
                user_id,
                resource,
                operation,
                {"resource_data": document, "document_id": document.get("$id") or document.get("id")},
            )
            for document in documents
        ]
        return list(await asyncio.gather(*checks))

    # Audit

    async def _record_access(
        self,
        user_id: str,
        resource: str,
        operation: str,
        decision: Decision,
        facility_id: Optional[str],
        context: Optional[Mapping[str, Any]],
    ) -> None:
        audit_required = self.snapshot.is_audit_required(resource) if self.configuration.is_initialized else False
        if not self.log_access_attempts and not audit_required:
            return

        context = context or {}
        document_id = context.get("document_id") or context.get("documentId")
        if self.log_access_attempts:
            logger.info("Access attempt: " + json.dumps({
                "userId": user_id,
                "resource": resource,
                "operation": operation,
                "facilityId": facility_id,
                "documentId": document_id,
                "granted": decision.allowed,
                "reason": decision.reason,
            }))

        if self.audit_logger is None:
            return
        try:
            await self.audit_logger.log_access(AuditRecord(
                user_id=user_id,
                resource=resource,
                operation=operation,
                granted=decision.allowed,
                reason=decision.reason,
                role=decision.details.get("role"),
                document_id=document_id,
                facility_id=facility_id,
            ))
        except Exception as e:
            logger.error(f"Failed to audit {operation} on {resource} for user {user_id}: {e}")

    # Cache management

    async def invalidate_user(self, user_id: str) -> None:
        await self.cache.invalidate_user(user_id)

    async def clear_cache(self) -> None:
        await self.cache.clear()

    async def get_cache_stats(self) -> Dict[str, Any]:
        return await self.cache.stats()


def _requested_role(context: Mapping[str, Any]) -> Optional[TeamRole]:
    value = context.get("new_role") or context.get("newRole")
    if value is None:
        return None
    try:
        return parse_team_role(value)
    except ValidationError:
        return None
