"""Migration report entity."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class MigrationReport:
    """Outcome counts of one legacy role migration run."""
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total(self) -> int:
        return self.successful + self.skipped + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successful": self.successful,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
            "errors": list(self.errors),
            "dryRun": self.dry_run,
        }
