"""Tests for the role model."""

import pytest

from facility_authz.config.constants import Role, TeamRole
from facility_authz.core.exceptions import ValidationError
from facility_authz.features.roles import (
    RoleComparison,
    compare,
    default_team_role_for,
    highest_team_role,
    is_at_least,
    level_of,
    parse_role,
    parse_team_role,
    team_role_level,
)


class TestRoleHierarchy:
    """Test the global role ordering."""

    def test_levels_are_strictly_ordered(self):
        assert level_of(Role.ADMINISTRATOR) > level_of(Role.SUPERVISOR) > level_of(Role.DOCTOR) > level_of(Role.USER)

    def test_compare(self):
        assert compare("administrator", "doctor") == RoleComparison.GREATER
        assert compare(Role.USER, Role.SUPERVISOR) == RoleComparison.LESS
        assert compare(Role.DOCTOR, "doctor") == RoleComparison.EQUAL

    def test_is_at_least(self):
        assert is_at_least(Role.SUPERVISOR, Role.DOCTOR)
        assert is_at_least(Role.DOCTOR, Role.DOCTOR)
        assert not is_at_least(Role.USER, Role.DOCTOR)

    def test_parse_role_normalizes_case_and_whitespace(self):
        assert parse_role(" Supervisor ") == Role.SUPERVISOR

    @pytest.mark.parametrize("value", ["superuser", "", None, "role:*"])
    def test_parse_role_rejects_unknown_values(self, value):
        with pytest.raises(ValidationError):
            parse_role(value)


class TestTeamRoles:
    """Test team role ordering and defaults."""

    def test_team_role_levels(self):
        assert team_role_level(TeamRole.OWNER) > team_role_level(TeamRole.ADMIN) > team_role_level("member")

    def test_highest_team_role_ignores_unknown_values(self):
        assert highest_team_role(["member", "bogus", "admin"]) == TeamRole.ADMIN
        assert highest_team_role(["bogus"]) is None
        assert highest_team_role([]) is None

    def test_parse_team_role_rejects_unknown(self):
        with pytest.raises(ValidationError):
            parse_team_role("superowner")

    @pytest.mark.parametrize(
        "role,expected",
        [
            (Role.ADMINISTRATOR, TeamRole.OWNER),
            (Role.SUPERVISOR, TeamRole.OWNER),
            (Role.DOCTOR, TeamRole.ADMIN),
            (Role.USER, TeamRole.MEMBER),
        ],
    )
    def test_default_team_role_for(self, role, expected):
        assert default_team_role_for(role) == expected
