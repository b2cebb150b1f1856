"""Role model.

Global roles are totally ordered administrator > supervisor > doctor > user,
team roles are ordered owner > admin > member. Everything here is pure.
"""

from enum import Enum
from typing import Iterable, Optional, Union

from ...config.constants import Role, TeamRole
from ...core.exceptions import ValidationError


ROLE_LEVELS = {
    Role.USER: 1,
    Role.DOCTOR: 2,
    Role.SUPERVISOR: 3,
    Role.ADMINISTRATOR: 4,
}

TEAM_ROLE_LEVELS = {
    TeamRole.MEMBER: 1,
    TeamRole.ADMIN: 2,
    TeamRole.OWNER: 3,
}

# Global role -> team role used when assigning without an explicit team role.
# Administrators land in the global admin team as owners.
DEFAULT_TEAM_ROLES = {
    Role.ADMINISTRATOR: TeamRole.OWNER,
    Role.SUPERVISOR: TeamRole.OWNER,
    Role.DOCTOR: TeamRole.ADMIN,
    Role.USER: TeamRole.MEMBER,
}


class RoleComparison(str, Enum):
    """Result of comparing two roles."""
    GREATER = "greater"
    EQUAL = "equal"
    LESS = "less"


def parse_role(value: Union[str, Role, None]) -> Role:
    """Convert a boundary string into a Role.

    Raises:
        ValidationError: If the value is not a known role.
    """
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value.strip().lower())
        except ValueError:
            pass
    raise ValidationError(f"Invalid role: {value!r}", field="role")


def parse_team_role(value: Union[str, TeamRole, None]) -> TeamRole:
    """Convert a boundary string into a TeamRole.

    Raises:
        ValidationError: If the value is not a known team role.
    """
    if isinstance(value, TeamRole):
        return value
    if isinstance(value, str):
        try:
            return TeamRole(value.strip().lower())
        except ValueError:
            pass
    raise ValidationError(f"Invalid team role: {value!r}", field="team_role")


def level_of(role: Union[str, Role]) -> int:
    """Hierarchy level of a role (higher is more privileged)."""
    return ROLE_LEVELS[parse_role(role)]


def compare(role_a: Union[str, Role], role_b: Union[str, Role]) -> RoleComparison:
    """Compare two roles by hierarchy level."""
    a, b = level_of(role_a), level_of(role_b)
    if a > b:
        return RoleComparison.GREATER
    if a < b:
        return RoleComparison.LESS
    return RoleComparison.EQUAL


def is_at_least(role: Union[str, Role], minimum: Union[str, Role]) -> bool:
    """Check whether role is equal to or above minimum."""
    return level_of(role) >= level_of(minimum)


def team_role_level(team_role: Union[str, TeamRole]) -> int:
    return TEAM_ROLE_LEVELS[parse_team_role(team_role)]


def highest_team_role(team_roles: Iterable[Union[str, TeamRole]]) -> Optional[TeamRole]:
    """Highest team role in the iterable, ignoring unknown values.

    Returns None when no known team role is present.
    """
    known = []
    for value in team_roles:
        try:
            known.append(parse_team_role(value))
        except ValidationError:
            continue
    if not known:
        return None
    return max(known, key=lambda r: TEAM_ROLE_LEVELS[r])


def default_team_role_for(role: Union[str, Role]) -> TeamRole:
    """Team role a user with the given global role receives by default."""
    return DEFAULT_TEAM_ROLES[parse_role(role)]
