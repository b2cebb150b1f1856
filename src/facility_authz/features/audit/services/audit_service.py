"""Audit logger backed by the external document store."""

import logging

from ..entities.audit_record import AuditRecord, RoleChangeRecord
from ...teams.entities.protocols import DirectoryClient
from ....config.constants import AuditCollections
from ....core.exceptions import DirectoryError

logger = logging.getLogger(__name__)


class DocumentStoreAuditLogger:
    """Writes audit records as documents.

    Storage is delegated to the directory. A failed write is logged and
    reported through the return value; it never fails the audited call.
    """

    def __init__(
        self,
        directory: DirectoryClient,
        access_collection: str = AuditCollections.ACCESS_AUDIT_LOG,
        role_change_collection: str = AuditCollections.ROLE_CHANGE_LOG,
    ):
        self.directory = directory
        self.access_collection = access_collection
        self.role_change_collection = role_change_collection

    async def log_access(self, record: AuditRecord) -> bool:
        try:
            await self.directory.create_document(self.access_collection, record.to_document())
        except DirectoryError as e:
            logger.error(f"Audit log write failed for user {record.user_id}: {e.message}")
            return False
        return True

    async def log_role_change(self, record: RoleChangeRecord) -> bool:
        try:
            await self.directory.create_document(self.role_change_collection, record.to_document())
        except DirectoryError as e:
            logger.error(f"Failed to log role change for user {record.target_user_id}: {e.message}")
            return False
        logger.info(
            f"Role change logged: user={record.target_user_id} action={record.action.value} "
            f"facility={record.facility_id} {record.previous_role} -> {record.new_role}"
        )
        return True
