"""Audit feature: access and role change records written to the document store."""

from .entities import AuditLogger, AuditRecord, RoleChangeAction, RoleChangeRecord
from .services import DocumentStoreAuditLogger

__all__ = [
    "AuditLogger",
    "AuditRecord",
    "RoleChangeAction",
    "RoleChangeRecord",
    "DocumentStoreAuditLogger",
]
