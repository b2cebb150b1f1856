"""Audit services."""

from .audit_service import DocumentStoreAuditLogger

__all__ = ["DocumentStoreAuditLogger"]
