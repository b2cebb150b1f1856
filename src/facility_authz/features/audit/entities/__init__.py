"""Audit entities."""

from .audit_record import AuditRecord, RoleChangeAction, RoleChangeRecord
from .protocols import AuditLogger

__all__ = ["AuditRecord", "RoleChangeAction", "RoleChangeRecord", "AuditLogger"]
