from __future__ import annotations

import pytest

from hms_audit.application.services.index_planner import IndexPlanner
from hms_audit.domain.errors import UnknownEntityFamilyError
from hms_audit.domain.models.schema import IndexSpec
from hms_audit.domain.schema_registry import build_default_registry

EXPECTED_INDEXES = {
    "medical_records": [
        IndexSpec.of(("patientId", 1)),
        IndexSpec.of(("doctorId", 1)),
        IndexSpec.of(("appointmentId", 1)),
        IndexSpec.of(("recordDate", -1)),
        IndexSpec.of(("patientId", 1), ("recordDate", -1)),
    ],
    "prescriptions": [
        IndexSpec.of(("patientId", 1)),
        IndexSpec.of(("doctorId", 1)),
        IndexSpec.of(("prescriptionDate", -1)),
        IndexSpec.of(("isActive", 1)),
    ],
    "audit_logs": [
        IndexSpec.of(("userId", 1)),
        IndexSpec.of(("action", 1)),
        IndexSpec.of(("entityType", 1), ("entityId", 1)),
        IndexSpec.of(("timestamp", -1)),
        IndexSpec.of(("userId", 1), ("timestamp", -1)),
    ],
    "system_logs": [
        IndexSpec.of(("level", 1)),
        IndexSpec.of(("service", 1)),
        IndexSpec.of(("timestamp", -1)),
        IndexSpec.of(("userId", 1)),
        IndexSpec.of(("level", 1), ("timestamp", -1)),
    ],
    "notifications": [
        IndexSpec.of(("userId", 1)),
        IndexSpec.of(("type", 1)),
        IndexSpec.of(("isRead", 1)),
        IndexSpec.of(("isSent", 1)),
        IndexSpec.of(("userId", 1), ("isRead", 1)),
        IndexSpec.of(("scheduledAt", 1)),
    ],
    "patient_documents": [
        IndexSpec.of(("patientId", 1)),
        IndexSpec.of(("documentType", 1)),
        IndexSpec.of(("uploadedBy", 1)),
        IndexSpec.of(("isActive", 1)),
        IndexSpec.of(("patientId", 1), ("documentType", 1)),
    ],
    "performance_metrics": [
        IndexSpec.of(("service", 1)),
        IndexSpec.of(("metric", 1)),
        IndexSpec.of(("timestamp", -1)),
        IndexSpec.of(("service", 1), ("metric", 1), ("timestamp", -1)),
    ],
}


@pytest.fixture(scope="module")
def planner() -> IndexPlanner:
    return IndexPlanner(build_default_registry())


@pytest.mark.parametrize("family", sorted(EXPECTED_INDEXES))
def test_planned_indexes_match_collection_layout(planner: IndexPlanner, family: str) -> None:
    assert list(planner.indexes_for(family)) == EXPECTED_INDEXES[family]


def test_unknown_family(planner: IndexPlanner) -> None:
    with pytest.raises(UnknownEntityFamilyError):
        planner.indexes_for("billing")


def test_patient_history_uses_compound_index(planner: IndexPlanner) -> None:
    chosen = planner.select("medical_records", equality=["patientId"], sort=[("recordDate", -1)])
    assert chosen == IndexSpec.of(("patientId", 1), ("recordDate", -1))


def test_point_lookup_prefers_single_field_index(planner: IndexPlanner) -> None:
    chosen = planner.select("medical_records", equality=["patientId"])
    assert chosen == IndexSpec.of(("patientId", 1))


def test_entity_trail_served_by_entity_index(planner: IndexPlanner) -> None:
    chosen = planner.select("audit_logs", equality=["entityId", "entityType"], sort=[("timestamp", -1)])
    assert chosen == IndexSpec.of(("entityType", 1), ("entityId", 1))


def test_recent_first_scan(planner: IndexPlanner) -> None:
    chosen = planner.select("system_logs", sort=[("timestamp", -1)])
    assert chosen == IndexSpec.of(("timestamp", -1))


def test_level_time_window(planner: IndexPlanner) -> None:
    chosen = planner.select("system_logs", equality=["level"], range_field="timestamp", sort=[("timestamp", -1)])
    assert chosen == IndexSpec.of(("level", 1), ("timestamp", -1))


def test_unread_notifications_for_user(planner: IndexPlanner) -> None:
    chosen = planner.select("notifications", equality=["userId", "isRead"])
    assert chosen == IndexSpec.of(("userId", 1), ("isRead", 1))


def test_unplanned_shape_has_no_index(planner: IndexPlanner) -> None:
    assert planner.select("medical_records", equality=["diagnosis"]) is None
    assert planner.select("notifications", sort=[("createdAt", -1)]) is None
