"""Teams feature for facility-authz.

Per-facility teams, the global admin team and their memberships:
- entities/: Team references, naming policy, results and the directory protocol
- services/: The facility team manager
"""

from .entities import (
    AssignmentResult,
    BatchAssignmentResult,
    DirectoryClient,
    FacilityTeamMember,
    MoveResult,
    RemovalResult,
    Team,
    TeamMembership,
    TeamNamingPolicy,
    TeamRef,
    UserTeam,
)
from .services import FacilityTeamManager

__all__ = [
    "AssignmentResult",
    "BatchAssignmentResult",
    "DirectoryClient",
    "FacilityTeamMember",
    "MoveResult",
    "RemovalResult",
    "Team",
    "TeamMembership",
    "TeamNamingPolicy",
    "TeamRef",
    "UserTeam",
    "FacilityTeamManager",
]
