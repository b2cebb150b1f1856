"""Team entities - domain objects and directory protocol."""

from .team import (
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
from .protocols import DirectoryClient

__all__ = [
    "AssignmentResult",
    "BatchAssignmentResult",
    "FacilityTeamMember",
    "MoveResult",
    "RemovalResult",
    "Team",
    "TeamMembership",
    "TeamNamingPolicy",
    "TeamRef",
    "UserTeam",
    "DirectoryClient",
]
