"""Audit logger protocol."""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from .audit_record import AuditRecord, RoleChangeRecord


@runtime_checkable
class AuditLogger(Protocol):
    """Sink for audit records. Returns whether the record was stored."""

    @abstractmethod
    async def log_access(self, record: AuditRecord) -> bool:
        ...

    @abstractmethod
    async def log_role_change(self, record: RoleChangeRecord) -> bool:
        ...
