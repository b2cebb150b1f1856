"""Tests for the legacy role migration."""

import pytest

from facility_authz.core.exceptions import DirectoryError
from facility_authz.features.audit import RoleChangeAction
from facility_authz.features.migration import LegacyRoleMigrator


@pytest.fixture
def migrator(directory, team_manager):
    return LegacyRoleMigrator(directory, team_manager, page_size=2)


def _roles_by_team(directory, user_id):
    return {m["teamName"]: m["roles"] for m in directory.user_memberships(user_id)}


class TestLegacyRoleMigrator:
    """Test migrating legacy role attributes into memberships."""

    @pytest.mark.asyncio
    async def test_migrates_every_user(self, migrator, directory):
        directory.add_user("admin", role="administrator")
        directory.add_user("sup", role="supervisor", facility_id="F1")
        directory.add_user("doc", role="doctor", facility_id="F1")
        directory.add_user("clerk", labels=["data_entry_clerk", "facility:F2"])
        directory.add_user("nowhere", role="doctor")

        report = await migrator.migrate()

        assert report.successful == 4
        assert report.skipped == 1
        assert report.failed == 0
        assert _roles_by_team(directory, "admin") == {"global-admin-team": ["owner"]}
        assert _roles_by_team(directory, "sup") == {"facility-F1-team": ["owner"]}
        assert _roles_by_team(directory, "doc") == {"facility-F1-team": ["admin"]}
        assert _roles_by_team(directory, "clerk") == {"facility-F2-team": ["member"]}
        assert _roles_by_team(directory, "nowhere") == {}

    @pytest.mark.asyncio
    async def test_pages_through_users(self, migrator, directory):
        for index in range(5):
            directory.add_user(f"u{index}", role="user", facility_id="F1")

        report = await migrator.migrate()

        assert report.successful == 5
        assert directory.calls["list_users"] == 3

    @pytest.mark.asyncio
    async def test_second_run_skips_migrated_users(self, migrator, directory):
        directory.add_user("admin", role="administrator")
        directory.add_user("doc", role="doctor", facility_id="F1")
        await migrator.migrate()

        report = await migrator.migrate()

        assert report.successful == 0
        assert report.skipped == 2

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, migrator, directory):
        directory.add_user("admin", role="administrator")
        directory.add_user("doc", role="doctor", facility_id="F1")

        report = await migrator.migrate(dry_run=True)

        assert report.dry_run
        assert report.successful == 2
        assert directory.memberships == {}
        assert directory.teams == {}

    @pytest.mark.asyncio
    async def test_users_without_role_are_skipped(self, migrator, directory):
        directory.add_user("someone", facility_id="F1")

        report = await migrator.migrate()

        assert report.skipped == 1

    @pytest.mark.asyncio
    async def test_failures_are_reported_per_user(self, migrator, directory):
        directory.add_user("doc", role="doctor", facility_id="F1", email="doc@example.org")
        directory.add_user("clerk", role="user", facility_id="F2")
        directory.failures["create_membership"] = DirectoryError("Server error", status_code=500)

        report = await migrator.migrate()

        assert report.failed == 1
        assert report.successful == 1
        assert report.errors == [{"userId": "doc", "email": "doc@example.org", "error": "Server error"}]
        assert report.to_dict()["total"] == 2

    @pytest.mark.asyncio
    async def test_migration_is_audited(self, migrator, directory, audit_logger):
        directory.add_user("doc", role="doctor", facility_id="F1")

        await migrator.migrate()

        audit_logger.log_role_change.assert_awaited_once()
        record = audit_logger.log_role_change.await_args.args[0]
        assert record.action == RoleChangeAction.ASSIGN
        assert record.new_role == "admin"
        assert record.performed_by == "legacy-role-migration"
        assert record.reason == "Migrated from legacy role doctor"

    @pytest.mark.asyncio
    async def test_administrator_migration_is_audited_once(self, migrator, directory, audit_logger):
        directory.add_user("root", role="administrator")

        await migrator.migrate()

        audit_logger.log_role_change.assert_awaited_once()
        record = audit_logger.log_role_change.await_args.args[0]
        assert record.new_role == "global-admin-team"
        assert record.reason == "Migrated from legacy role administrator"
