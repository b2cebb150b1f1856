"""Migration of legacy role attributes into team memberships.

Users of the earlier model carry their role and facility as user
preferences or labels. The migrator turns those into memberships:
administrators join the global admin team, everyone else joins the team of
their home facility with the team role that matches their global role.
"""

import logging
from typing import List

from ..entities.report import MigrationReport
from ...roles.role_model import default_team_role_for
from ...teams.entities.protocols import DirectoryClient
from ...teams.services.team_service import FacilityTeamManager
from ....core.exceptions import AuthzError, DirectoryError
from ....integrations.directory.models import DirectoryUser

logger = logging.getLogger(__name__)

MIGRATION_ACTOR = "legacy-role-migration"


class LegacyRoleMigrator:
    """Walks every directory user and creates the matching team membership."""

    def __init__(
        self,
        directory: DirectoryClient,
        team_manager: FacilityTeamManager,
        page_size: int = 100,
    ):
        self.directory = directory
        self.team_manager = team_manager
        self.page_size = page_size

    async def _list_users(self) -> List[DirectoryUser]:
        users = []
        offset = 0
        while True:
            records = await self.directory.list_users(limit=self.page_size, offset=offset)
            users.extend(DirectoryUser.from_record(record) for record in records)
            if len(records) < self.page_size:
                return users
            offset += self.page_size

    async def migrate(self, dry_run: bool = False) -> MigrationReport:
        """
        Migrate all users.

        Args:
            dry_run: Count what would happen without writing memberships

        Returns:
            MigrationReport with per-outcome counts and per-user errors

        Raises:
            DirectoryError: Listing users failed
        """
        users = await self._list_users()
        logger.info(f"Starting legacy role migration of {len(users)} users (dry_run={dry_run})")

        report = MigrationReport(dry_run=dry_run)
        for user in users:
            try:
                migrated = await self._migrate_user(user, dry_run)
            except (AuthzError, DirectoryError) as e:
                logger.error(f"Failed to migrate user {user.id}: {e.message}")
                report.failed += 1
                report.errors.append({"userId": user.id, "email": user.email, "error": e.message})
                continue

            if migrated:
                report.successful += 1
            else:
                report.skipped += 1

        logger.info(f"Migration completed: {report.to_dict()}")
        return report

    async def _migrate_user(self, user: DirectoryUser, dry_run: bool) -> bool:
        """Migrate one user; False when the user is skipped."""
        if user.primary_role is None:
            logger.debug(f"Skipping user {user.id}: no legacy role")
            return False

        user_teams = await self.team_manager.get_user_teams(user.id, use_cache=False)

        if user.is_administrator:
            if any(team.is_global_admin_team for team in user_teams):
                logger.debug(f"Skipping user {user.id}: already a global admin")
                return False
            if not dry_run:
                await self.team_manager.add_global_admin(
                    user.id, performed_by=MIGRATION_ACTOR, reason=_migration_reason(user)
                )
            return True

        facility_id = user.home_facility_id
        if not facility_id:
            logger.debug(f"Skipping user {user.id}: no facility")
            return False
        if any(team.is_facility_team and team.facility_id == facility_id for team in user_teams):
            logger.debug(f"Skipping user {user.id}: already in facility {facility_id} team")
            return False

        team_role = default_team_role_for(user.primary_role)
        if not dry_run:
            await self.team_manager.assign_user_to_team(
                user.id, facility_id, team_role, performed_by=MIGRATION_ACTOR, reason=_migration_reason(user)
            )
        return True


def _migration_reason(user: DirectoryUser) -> str:
    return f"Migrated from legacy role {user.primary_role.value}"
