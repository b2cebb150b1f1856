"""Migration entities."""

from .report import MigrationReport

__all__ = ["MigrationReport"]
