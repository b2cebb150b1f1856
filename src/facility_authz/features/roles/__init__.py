"""Role model feature: global role hierarchy and team role ordering."""

from .role_model import (
    ROLE_LEVELS,
    TEAM_ROLE_LEVELS,
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

__all__ = [
    "ROLE_LEVELS",
    "TEAM_ROLE_LEVELS",
    "RoleComparison",
    "compare",
    "default_team_role_for",
    "highest_team_role",
    "is_at_least",
    "level_of",
    "parse_role",
    "parse_team_role",
    "team_role_level",
]
