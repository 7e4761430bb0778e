from __future__ import annotations

from datetime import UTC, datetime

import pytest

from hms_audit.application.services.audit_trail_service import AuditTrailWriter
from hms_audit.application.services.collection_service import CollectionManager


@pytest.fixture
def writer(manager: CollectionManager) -> AuditTrailWriter:
    return AuditTrailWriter(manager, "audit_logs")


def test_writer_exposes_no_mutation(writer: AuditTrailWriter) -> None:
    for name in ("update", "replace", "delete", "deactivate", "remove"):
        assert not hasattr(writer, name)


def test_entity_trail_newest_first(writer: AuditTrailWriter, clock) -> None:
    for action in ("CREATE", "UPDATE", "UPDATE"):
        writer.record(
            userId=7,
            action=action,
            entityType="Patient",
            entityId=42,
            oldValues={"status": "ACTIVE"},
            newValues={"status": "ACTIVE"},
            ipAddress="192.168.1.100",
            timestamp=clock.advance(minutes=1),
        )
    writer.record(userId=7, action="UPDATE", entityType="Appointment", entityId=42, timestamp=clock.advance(minutes=1))

    trail = list(writer.find({"entityType": "Patient", "entityId": 42}, sort=[("timestamp", -1)]))

    assert [entry["action"] for entry in trail] == ["UPDATE", "UPDATE", "CREATE"]
    stamps = [entry["timestamp"] for entry in trail]
    assert stamps == sorted(stamps, reverse=True)


def test_record_stamps_timestamp(writer: AuditTrailWriter, clock) -> None:
    document_id = writer.record(userId=3, action="LOGIN", entityType="User", entityId=3)

    stored = writer.find({"userId": 3})
    assert [(entry["_id"], entry["timestamp"]) for entry in stored] == [(document_id, clock())]


def test_record_keeps_supplied_timestamp(writer: AuditTrailWriter) -> None:
    at = datetime(2024, 12, 31, 23, 59, tzinfo=UTC)
    writer.record(action="EXPORT", entityType="Report", timestamp=at)
    assert [entry["timestamp"] for entry in writer.find({"action": "EXPORT"})] == [at]


def test_window_by_user(writer: AuditTrailWriter, clock) -> None:
    early = clock()
    writer.record(userId=5, action="READ", entityType="Patient")
    clock.advance(days=2)
    writer.record(userId=5, action="READ", entityType="Patient")

    recent = writer.find({"userId": 5, "timestamp": {"$gt": early}})
    assert [entry["timestamp"] for entry in recent] == [clock()]


def test_mutable_family_rejected(manager: CollectionManager) -> None:
    with pytest.raises(ValueError):
        AuditTrailWriter(manager, "notifications")


def test_ensure_is_idempotent(writer: AuditTrailWriter, manager: CollectionManager) -> None:
    assert sorted(writer.ensure()) == manager.index_names("audit_logs")
