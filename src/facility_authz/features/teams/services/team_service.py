"""Facility team and membership manager.

Owns the lifecycle of per-facility teams and the global admin team, and the
memberships inside them. Team and membership lookups are cached through the
shared AuthzCache; every write invalidates the affected user eagerly.

Writes are not transactional against the directory. Compound flows such as
``move_user_between_facilities`` report which half succeeded instead of
pretending to be atomic.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..entities.protocols import DirectoryClient
from ..entities.team import (
    AssignmentResult,
    BatchAssignmentResult,
    FacilityTeamMember,
    MoveResult,
    RemovalResult,
    Team,
    TeamMembership,
    TeamNamingPolicy,
    TeamRef,
    UserTeam,
)
from ...audit.entities.audit_record import RoleChangeAction, RoleChangeRecord
from ...audit.entities.protocols import AuditLogger
from ...cache.services.cache_service import AuthzCache
from ...roles.role_model import highest_team_role, parse_team_role
from ....config.constants import TeamKind, TeamRole
from ....core.exceptions import (
    AuthzError,
    DirectoryError,
    LimitExceededError,
    TeamOperationError,
    ValidationError,
)
from ....integrations.directory.models import DirectoryUser

if TYPE_CHECKING:
    from ...configuration.services.configuration_loader import ConfigurationLoader

logger = logging.getLogger(__name__)


class FacilityTeamManager:
    """Service for facility team and membership management."""

    def __init__(
        self,
        directory: DirectoryClient,
        configuration: "ConfigurationLoader",
        cache: AuthzCache,
        audit_logger: Optional[AuditLogger] = None,
        max_teams_per_user: Optional[int] = None,
    ):
        self.directory = directory
        self.configuration = configuration
        self.cache = cache
        self.audit_logger = audit_logger
        self._max_teams_override = max_teams_per_user

    @property
    def naming(self) -> TeamNamingPolicy:
        return self.configuration.snapshot.team_mappings.naming

    @property
    def max_teams_per_user(self) -> int:
        if self._max_teams_override is not None:
            return self._max_teams_override
        return self.configuration.snapshot.team_mappings.max_teams_per_user

    # Teams

    async def get_or_create_facility_team(self, facility_id: str) -> Team:
        """Return the facility's team, creating it on first use."""
        if not facility_id:
            raise ValidationError("Facility ID is required", field="facility_id")
        return await self._get_or_create(TeamRef.facility(facility_id))

    async def get_or_create_global_admin_team(self) -> Team:
        """Return the single global admin team, creating it on first use."""
        return await self._get_or_create(TeamRef.global_admin())

    async def get_team_by_id(self, team_id: str) -> Optional[Team]:
        """Team with the given id, None if absent or not owned by the engine."""
        cache_key = self.cache.team_by_id_key(team_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            record = await self.directory.get_team(team_id)
        except DirectoryError as e:
            if e.is_not_found:
                return None
            raise TeamOperationError(e.message, operation="get_team", status_code=e.status_code) from e

        team = Team.from_record(record, self.naming)
        if team is not None:
            await self._cache_team(team)
        return team

    async def _find_team(self, ref: TeamRef) -> Optional[Team]:
        name = self.naming.team_name(ref)
        cached = await self.cache.get(self.cache.team_by_name_key(name))
        if cached is not None:
            return cached

        try:
            records = await self.directory.list_teams(name=name)
        except DirectoryError as e:
            raise TeamOperationError(e.message, operation="list_teams", status_code=e.status_code) from e

        matches = [record for record in records if record.get("name") == name]
        if not matches:
            return None

        if len(matches) > 1:
            # Prefer the team created under the deterministic id
            expected_id = self.naming.team_id(ref)
            logger.warning(f"Found {len(matches)} teams named {name}, using {expected_id} if present")
            matches.sort(key=lambda record: record.get("$id") != expected_id)

        team = Team.from_record(matches[0], self.naming)
        if team is not None:
            await self._cache_team(team)
        return team

    async def _get_or_create(self, ref: TeamRef) -> Team:
        team = await self._find_team(ref)
        if team is not None:
            return team

        if ref.is_facility_team and not self.configuration.snapshot.team_mappings.auto_create:
            raise TeamOperationError(
                f"Facility team does not exist for facility: {ref.facility_id}",
                operation="create_team",
            )

        team_id = self.naming.team_id(ref)
        name = self.naming.team_name(ref)
        roles = [role.value for role in self.configuration.snapshot.team_mappings.team_roles]

        try:
            record = await self.directory.create_team(team_id, name, roles)
        except DirectoryError as e:
            if not e.is_conflict:
                logger.error(f"Error creating team {name}: {e.message}")
                raise TeamOperationError(e.message, operation="create_team", status_code=e.status_code) from e
            # Lost the creation race; the winner's team has the same id
            logger.info(f"Team {name} already exists, resolving existing team")
            existing = await self.get_team_by_id(team_id)
            if existing is None:
                existing = await self._find_team(ref)
            if existing is None:
                raise TeamOperationError(
                    f"Team {name} reported as existing but could not be found",
                    operation="create_team",
                    status_code=e.status_code,
                ) from e
            return existing

        team = Team.from_record(record, self.naming) or Team(id=team_id, name=name, ref=ref)
        await self._cache_team(team)
        logger.info(f"Created team {name} ({team.id})")
        return team

    async def _cache_team(self, team: Team) -> None:
        await self.cache.set(self.cache.team_by_name_key(team.name), team)
        await self.cache.set(self.cache.team_by_id_key(team.id), team)

    # Memberships

    async def _get_membership(self, user_id: str, team_id: str) -> Optional[TeamMembership]:
        try:
            records = await self.directory.list_team_memberships(team_id)
        except DirectoryError as e:
            raise TeamOperationError(
                e.message, operation="list_team_memberships", status_code=e.status_code
            ) from e
        for record in records:
            if record.get("userId") == user_id:
                return TeamMembership.from_record(record)
        return None

    async def _get_directory_user(self, user_id: str) -> DirectoryUser:
        try:
            record = await self.directory.get_user(user_id)
        except DirectoryError as e:
            if e.is_not_found:
                raise ValidationError(f"User not found: {user_id}", field="user_id") from e
            raise TeamOperationError(e.message, operation="get_user", status_code=e.status_code) from e
        return DirectoryUser.from_record(record)

    async def get_user_teams(self, user_id: str, use_cache: bool = True) -> Tuple[UserTeam, ...]:
        """All engine-owned team memberships of a user, empty if none."""
        if not user_id:
            raise ValidationError("User ID is required", field="user_id")

        cache_key = self.cache.user_teams_key(user_id)
        generation = self.cache.generation(user_id)
        if use_cache:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            records = await self.directory.list_user_memberships(user_id)
        except DirectoryError as e:
            if e.is_not_found:
                return ()
            raise TeamOperationError(
                e.message, operation="list_user_memberships", status_code=e.status_code
            ) from e

        user_teams = []
        for record in records:
            membership = TeamMembership.from_record(record)
            ref = self.naming.parse(record.get("teamName"))
            team_name = record.get("teamName")
            if ref is None:
                team = await self.get_team_by_id(membership.team_id)
                if team is None:
                    continue
                ref, team_name = team.ref, team.name
            user_teams.append(UserTeam(
                team_id=membership.team_id,
                team_name=team_name,
                ref=ref,
                roles=membership.roles,
                membership_id=membership.id,
            ))

        result = tuple(user_teams)
        if self.cache.generation(user_id) == generation:
            await self.cache.set(cache_key, result)
        return result

    async def is_user_in_facility_team(self, user_id: str, facility_id: str) -> bool:
        user_teams = await self.get_user_teams(user_id)
        return any(team.is_facility_team and team.facility_id == facility_id for team in user_teams)

    async def get_user_role_in_facility_team(self, user_id: str, facility_id: str) -> Optional[TeamRole]:
        """Highest team role the user holds in the facility's team, None if not a member."""
        user_teams = await self.get_user_teams(user_id)
        for team in user_teams:
            if team.is_facility_team and team.facility_id == facility_id:
                return team.team_role
        return None

    async def get_facility_team_members(self, facility_id: str) -> List[FacilityTeamMember]:
        """Members of a facility team with their highest team role and profile."""
        if not facility_id:
            raise ValidationError("Facility ID is required", field="facility_id")

        team = await self._find_team(TeamRef.facility(facility_id))
        if team is None:
            return []

        try:
            records = await self.directory.list_team_memberships(team.id)
        except DirectoryError as e:
            raise TeamOperationError(
                e.message, operation="list_team_memberships", status_code=e.status_code
            ) from e

        memberships = [TeamMembership.from_record(record) for record in records]
        users = await asyncio.gather(
            *(self.directory.get_user(m.user_id) for m in memberships),
            return_exceptions=True,
        )

        members = []
        for membership, user_record in zip(memberships, users):
            profile: Dict[str, Any] = {}
            name, email = membership.user_name, membership.user_email
            if isinstance(user_record, DirectoryError):
                logger.warning(f"Could not get user info for member {membership.user_id}: {user_record.message}")
            elif isinstance(user_record, BaseException):
                raise user_record
            else:
                user = DirectoryUser.from_record(user_record)
                profile = user.profile()
                name = user.name or name
                email = user.email or email
                profile.pop("name", None)
                profile.pop("email", None)

            members.append(FacilityTeamMember(
                user_id=membership.user_id,
                primary_role=membership.primary_role,
                roles=membership.roles,
                membership_id=membership.id,
                name=name,
                email=email,
                profile=profile,
            ))
        return members

    # Limits

    def _check_team_limit(
        self,
        user: DirectoryUser,
        user_teams: Iterable[UserTeam],
        requested: Set[str],
        vacating: Optional[str] = None,
    ) -> None:
        """Raise LimitExceededError if the user would exceed the facility team limit.

        Administrators and global admin team members are exempt. Facilities
        the user already belongs to do not count twice.
        """
        user_teams = list(user_teams)
        if user.is_administrator or any(team.is_global_admin_team for team in user_teams):
            return

        current = {team.facility_id for team in user_teams if team.is_facility_team}
        if vacating:
            current.discard(vacating)
        projected = current | set(requested)
        limit = self.max_teams_per_user
        if len(projected) > limit:
            raise LimitExceededError(limit, user_id=user.id, current=len(current))

    # Mutations

    async def assign_user_to_team(
        self,
        user_id: str,
        facility_id: str,
        team_role: Union[str, TeamRole, None] = None,
        performed_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AssignmentResult:
        """Assign a user to a facility team with a team role.

        Holding the same role already is a no-op reported with updated=False.
        Holding a different role updates it. A new membership is checked
        against the per-user team limit first.
        The optional reason is written to the role-change audit record.

        Raises:
            ValidationError: Missing user or facility id, unknown user or role.
            LimitExceededError: The membership would exceed the team limit.
            TeamOperationError: The directory failed.
        """
        return await self._assign(user_id, facility_id, team_role, performed_by, reason=reason)

    async def _assign(
        self,
        user_id: str,
        facility_id: str,
        team_role: Union[str, TeamRole, None],
        performed_by: Optional[str],
        vacating: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AssignmentResult:
        if not user_id or not facility_id:
            raise ValidationError("User ID and facility ID are required")

        role = (
            parse_team_role(team_role)
            if team_role is not None
            else self.configuration.snapshot.team_mappings.default_team_role
        )

        user = await self._get_directory_user(user_id)
        team = await self.get_or_create_facility_team(facility_id)

        existing = await self._get_membership(user_id, team.id)
        if existing is not None:
            if existing.has_role(role):
                return AssignmentResult(
                    success=True,
                    user_id=user_id,
                    facility_id=facility_id,
                    team_id=team.id,
                    team_role=role,
                    created=False,
                    updated=False,
                    message="User already has the specified role in the team",
                )
            return await self._update_role(user_id, facility_id, team, existing, role, performed_by, reason)

        user_teams = await self.get_user_teams(user_id, use_cache=False)
        self._check_team_limit(user, user_teams, {facility_id}, vacating=vacating)

        try:
            await self.directory.create_membership(team.id, user_id, [role.value])
        except DirectoryError as e:
            if not e.is_conflict:
                logger.error(f"Error assigning user {user_id} to team {team.name}: {e.message}")
                raise TeamOperationError(e.message, operation="create_membership", status_code=e.status_code) from e
            # Another caller added the membership first
            await self.cache.invalidate_user(user_id)
            return AssignmentResult(
                success=True,
                user_id=user_id,
                facility_id=facility_id,
                team_id=team.id,
                team_role=role,
                updated=False,
                message="User is already a member of the team",
            )

        await self.cache.invalidate_user(user_id)
        logger.info(f"Added user {user_id} to team {team.name} with role {role.value}")
        await self._audit(RoleChangeRecord(
            target_user_id=user_id,
            action=RoleChangeAction.ASSIGN,
            facility_id=facility_id,
            new_role=role.value,
            performed_by=performed_by,
            reason=reason,
        ))

        return AssignmentResult(
            success=True,
            user_id=user_id,
            facility_id=facility_id,
            team_id=team.id,
            team_role=role,
            created=True,
            updated=False,
            message="User assigned to team successfully",
        )

    async def update_user_team_role(
        self,
        user_id: str,
        facility_id: str,
        new_role: Union[str, TeamRole],
        performed_by: Optional[str] = None,
    ) -> AssignmentResult:
        """Change the team role of an existing facility team member."""
        if not user_id or not facility_id or not new_role:
            raise ValidationError("User ID, facility ID, and new role are required")
        role = parse_team_role(new_role)

        team = await self._find_team(TeamRef.facility(facility_id))
        membership = await self._get_membership(user_id, team.id) if team else None
        if team is None or membership is None:
            raise ValidationError("User is not a member of the facility team", field="user_id")

        if membership.roles == (role,):
            return AssignmentResult(
                success=True,
                user_id=user_id,
                facility_id=facility_id,
                team_id=team.id,
                team_role=role,
                updated=False,
                message="User already has the specified role in the team",
            )
        return await self._update_role(user_id, facility_id, team, membership, role, performed_by)

    async def _update_role(
        self,
        user_id: str,
        facility_id: str,
        team: Team,
        membership: TeamMembership,
        role: TeamRole,
        performed_by: Optional[str],
        reason: Optional[str] = None,
    ) -> AssignmentResult:
        previous = highest_team_role(membership.roles)
        try:
            await self.directory.update_membership_roles(team.id, membership.id, [role.value])
        except DirectoryError as e:
            logger.error(f"Error updating role of user {user_id} in team {team.name}: {e.message}")
            raise TeamOperationError(e.message, operation="update_membership_roles", status_code=e.status_code) from e

        await self.cache.invalidate_user(user_id)
        logger.info(f"Updated user {user_id} role to {role.value} in team {team.name}")
        await self._audit(RoleChangeRecord(
            target_user_id=user_id,
            action=RoleChangeAction.UPDATE,
            facility_id=facility_id,
            previous_role=previous.value if previous else None,
            new_role=role.value,
            performed_by=performed_by,
            reason=reason,
        ))

        return AssignmentResult(
            success=True,
            user_id=user_id,
            facility_id=facility_id,
            team_id=team.id,
            team_role=role,
            created=False,
            updated=True,
            message="User role updated successfully",
        )

    async def remove_user_from_team(
        self,
        user_id: str,
        facility_id: str,
        performed_by: Optional[str] = None,
    ) -> RemovalResult:
        """Remove a user from a facility team; a non-member is a successful no-op."""
        if not user_id or not facility_id:
            raise ValidationError("User ID and facility ID are required")
        return await self._remove(user_id, TeamRef.facility(facility_id), performed_by)

    async def _remove(self, user_id: str, ref: TeamRef, performed_by: Optional[str]) -> RemovalResult:
        team = await self._find_team(ref)
        if team is None:
            return RemovalResult(
                success=True,
                message="Team does not exist, user was not a member",
                user_id=user_id,
                facility_id=ref.facility_id,
            )

        membership = await self._get_membership(user_id, team.id)
        if membership is None:
            return RemovalResult(
                success=True,
                message="User was not a member of the team",
                user_id=user_id,
                facility_id=ref.facility_id,
                team_id=team.id,
            )

        try:
            await self.directory.delete_membership(team.id, membership.id)
        except DirectoryError as e:
            if not e.is_not_found:
                logger.error(f"Error removing user {user_id} from team {team.name}: {e.message}")
                raise TeamOperationError(e.message, operation="delete_membership", status_code=e.status_code) from e
            # Already gone
            await self.cache.invalidate_user(user_id)
            return RemovalResult(
                success=True,
                message="User was not a member of the team",
                user_id=user_id,
                facility_id=ref.facility_id,
                team_id=team.id,
            )

        await self.cache.invalidate_user(user_id)
        logger.info(f"Removed user {user_id} from team {team.name}")
        previous = highest_team_role(membership.roles)
        await self._audit(RoleChangeRecord(
            target_user_id=user_id,
            action=RoleChangeAction.REMOVE,
            facility_id=ref.facility_id,
            previous_role=previous.value if previous else None,
            performed_by=performed_by,
        ))

        return RemovalResult(
            success=True,
            message="User removed from team successfully",
            user_id=user_id,
            facility_id=ref.facility_id,
            team_id=team.id,
            removed=True,
        )

    async def assign_user_to_multiple_facilities(
        self,
        user_id: str,
        facility_ids: List[str],
        default_role: Union[str, TeamRole] = TeamRole.MEMBER,
        performed_by: Optional[str] = None,
    ) -> BatchAssignmentResult:
        """Assign a user to several facilities.

        The combined team count is validated before anything is written; on a
        limit violation the whole batch fails with no assignment made.
        """
        if not user_id or not facility_ids:
            return BatchAssignmentResult(
                success=False,
                user_id=user_id,
                error="User ID and facility IDs are required",
            )

        requested = list(dict.fromkeys(str(facility_id) for facility_id in facility_ids if facility_id))

        try:
            role = parse_team_role(default_role)
            user = await self._get_directory_user(user_id)
            user_teams = await self.get_user_teams(user_id, use_cache=False)
            self._check_team_limit(user, user_teams, set(requested))
        except AuthzError as e:
            logger.info(f"Batch assignment rejected for user {user_id}: {e.message}")
            return BatchAssignmentResult(success=False, user_id=user_id, error=e.message)

        result = BatchAssignmentResult(success=True, user_id=user_id)
        for facility_id in requested:
            try:
                result.results.append(await self._assign(user_id, facility_id, role, performed_by))
            except AuthzError as e:
                result.errors.append({"facilityId": facility_id, "error": e.message})

        result.success = not result.errors
        return result

    async def move_user_between_facilities(
        self,
        user_id: str,
        from_facility_id: str,
        to_facility_id: str,
        team_role: Union[str, TeamRole, None] = None,
        performed_by: Optional[str] = None,
    ) -> MoveResult:
        """Move a user from one facility team to another.

        Assigns to the target first, then removes from the source. The two
        directory writes are independent: when only one of them succeeds the
        result has partial_failure set and the caller retries the other half.
        The team role defaults to the role held in the source team.
        """
        if not user_id or not from_facility_id or not to_facility_id:
            raise ValidationError("User ID, source facility ID, and target facility ID are required")
        if from_facility_id == to_facility_id:
            raise ValidationError("Source and target facility must differ", field="to_facility_id")

        result = MoveResult(user_id=user_id, from_facility_id=from_facility_id, to_facility_id=to_facility_id)

        if team_role is None:
            team_role = await self.get_user_role_in_facility_team(user_id, from_facility_id)

        try:
            await self._assign(user_id, to_facility_id, team_role, performed_by, vacating=from_facility_id)
            result.assigned = True
        except AuthzError as e:
            result.errors.append(f"assign: {e.message}")
            return result

        try:
            await self.remove_user_from_team(user_id, from_facility_id, performed_by)
            result.removed = True
        except AuthzError as e:
            result.errors.append(f"remove: {e.message}")

        if result.partial_failure:
            logger.warning(
                f"Partial move of user {user_id} from facility {from_facility_id} to {to_facility_id}: "
                f"{'; '.join(result.errors)}"
            )
        return result

    async def add_global_admin(
        self,
        user_id: str,
        performed_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AssignmentResult:
        """Add a user to the global admin team as owner. Not counted against the team limit."""
        if not user_id:
            raise ValidationError("User ID is required", field="user_id")

        await self._get_directory_user(user_id)
        team = await self.get_or_create_global_admin_team()

        existing = await self._get_membership(user_id, team.id)
        if existing is not None:
            return AssignmentResult(
                success=True,
                user_id=user_id,
                facility_id=None,
                team_id=team.id,
                team_role=existing.primary_role,
                updated=False,
                message="User is already a global admin",
            )

        try:
            await self.directory.create_membership(team.id, user_id, [TeamRole.OWNER.value])
        except DirectoryError as e:
            if not e.is_conflict:
                raise TeamOperationError(e.message, operation="create_membership", status_code=e.status_code) from e

        await self.cache.invalidate_user(user_id)
        logger.info(f"Added user {user_id} to {team.name}")
        await self._audit(RoleChangeRecord(
            target_user_id=user_id,
            action=RoleChangeAction.ASSIGN,
            new_role=TeamKind.GLOBAL_ADMIN.value,
            performed_by=performed_by,
            reason=reason,
        ))

        return AssignmentResult(
            success=True,
            user_id=user_id,
            facility_id=None,
            team_id=team.id,
            team_role=TeamRole.OWNER,
            created=True,
            message="User added to global admin team",
        )

    async def remove_global_admin(self, user_id: str, performed_by: Optional[str] = None) -> RemovalResult:
        if not user_id:
            raise ValidationError("User ID is required", field="user_id")
        return await self._remove(user_id, TeamRef.global_admin(), performed_by)

    async def _audit(self, record: RoleChangeRecord) -> None:
        if self.audit_logger is not None:
            await self.audit_logger.log_role_change(record)

    # Cache management

    async def clear_cache(self) -> None:
        await self.cache.clear()

    async def get_cache_stats(self) -> Dict[str, Any]:
        return await self.cache.stats()
