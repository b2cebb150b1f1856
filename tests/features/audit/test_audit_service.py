"""Tests for the document store audit logger."""

from datetime import datetime, timezone

import pytest

from facility_authz.config.constants import AuditCollections
from facility_authz.core.exceptions import DirectoryError
from facility_authz.features.audit import (
    AuditRecord,
    DocumentStoreAuditLogger,
    RoleChangeAction,
    RoleChangeRecord,
)


class TestAuditRecords:
    """Test rendering of audit records."""

    def test_access_record_document(self):
        timestamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = AuditRecord(
            user_id="u1",
            resource="patients",
            operation="read",
            granted=True,
            reason="Facility team member",
            role="doctor",
            document_id="p1",
            facility_id="F1",
            timestamp=timestamp,
        )

        assert record.to_document() == {
            "userId": "u1",
            "role": "doctor",
            "collection": "patients",
            "documentId": "p1",
            "facilityId": "F1",
            "operation": "read",
            "granted": True,
            "reason": "Facility team member",
            "timestamp": "2024-01-02T03:04:05+00:00",
        }

    def test_role_change_document(self):
        record = RoleChangeRecord(
            target_user_id="u1",
            action=RoleChangeAction.UPDATE,
            facility_id="F1",
            previous_role="member",
            new_role="admin",
            performed_by="boss",
        )

        document = record.to_document()

        assert document["targetUserId"] == "u1"
        assert document["action"] == "update"
        assert document["assignedBy"] == "boss"
        assert document["previousRole"] == "member"
        assert document["newRole"] == "admin"


class TestDocumentStoreAuditLogger:
    """Test writing audit records to the directory's document store."""

    @pytest.fixture
    def audit_logger(self, directory):
        return DocumentStoreAuditLogger(directory)

    @pytest.mark.asyncio
    async def test_log_access(self, audit_logger, directory):
        written = await audit_logger.log_access(
            AuditRecord(user_id="u1", resource="patients", operation="read", granted=False, reason="denied")
        )

        assert written is True
        [document] = directory.documents[AuditCollections.ACCESS_AUDIT_LOG]
        assert document["userId"] == "u1"
        assert document["granted"] is False

    @pytest.mark.asyncio
    async def test_log_role_change(self, audit_logger, directory):
        written = await audit_logger.log_role_change(
            RoleChangeRecord(target_user_id="u1", action=RoleChangeAction.ASSIGN, new_role="member")
        )

        assert written is True
        assert len(directory.documents[AuditCollections.ROLE_CHANGE_LOG]) == 1

    @pytest.mark.asyncio
    async def test_write_failures_are_swallowed(self, audit_logger, directory):
        directory.failures["create_document"] = DirectoryError("Collection not found", status_code=404)

        written = await audit_logger.log_access(
            AuditRecord(user_id="u1", resource="patients", operation="read", granted=True, reason="ok")
        )

        assert written is False

    @pytest.mark.asyncio
    async def test_custom_collections(self, directory):
        audit_logger = DocumentStoreAuditLogger(directory, access_collection="access", role_change_collection="roles")

        await audit_logger.log_access(
            AuditRecord(user_id="u1", resource="patients", operation="read", granted=True, reason="ok")
        )

        assert "access" in directory.documents

    @pytest.mark.asyncio
    async def test_team_manager_writes_role_changes(self, directory, configuration, cache):
        from facility_authz.features.teams import FacilityTeamManager

        manager = FacilityTeamManager(directory, configuration, cache, audit_logger=DocumentStoreAuditLogger(directory))
        directory.add_user("u1", role="doctor")

        await manager.assign_user_to_team("u1", "F1", "admin", performed_by="boss")
        await manager.remove_user_from_team("u1", "F1", performed_by="boss")

        actions = [doc["action"] for doc in directory.documents[AuditCollections.ROLE_CHANGE_LOG]]
        assert actions == ["assign", "remove"]
