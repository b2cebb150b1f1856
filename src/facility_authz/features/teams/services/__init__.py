"""Team services."""

from .team_service import FacilityTeamManager

__all__ = ["FacilityTeamManager"]
