"""Audit record entities.

Access records are written for permission checks, role change records for
every membership mutation. Both are rendered into the document shape the
external store keeps in its audit collections.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class RoleChangeAction(str, Enum):
    """Membership mutations recorded in the role change log."""
    ASSIGN = "assign"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass
class AuditRecord:
    """One access decision."""
    user_id: str
    resource: str
    operation: str
    granted: bool
    reason: str
    role: Optional[str] = None
    document_id: Optional[str] = None
    facility_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "role": self.role,
            "collection": self.resource,
            "documentId": self.document_id,
            "facilityId": self.facility_id,
            "operation": self.operation,
            "granted": self.granted,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RoleChangeRecord:
    """One membership or team role change."""
    target_user_id: str
    action: RoleChangeAction
    facility_id: Optional[str] = None
    previous_role: Optional[str] = None
    new_role: Optional[str] = None
    performed_by: Optional[str] = None
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> Dict[str, Any]:
        return {
            "targetUserId": self.target_user_id,
            "action": self.action.value,
            "facilityId": self.facility_id,
            "previousRole": self.previous_role,
            "newRole": self.new_role,
            "assignedBy": self.performed_by,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }
