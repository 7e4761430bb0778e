from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from hms_audit.domain.errors import (
    IllegalTransitionError,
    InvalidEnumValue,
    MissingRequiredField,
    ReservedField,
    TypeMismatch,
)
from hms_audit.domain.models.schema import FieldType
from hms_audit.domain.rules.document_rules import (
    apply_flag_transitions,
    collect_violations,
    matches_type,
    next_update_stamp,
    parse_temporal,
)
from hms_audit.domain.schema_registry import build_default_registry

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture(scope="module")
def registry():
    return build_default_registry()


def test_parse_temporal_accepts_datetime_date_and_iso() -> None:
    assert parse_temporal(datetime(2025, 1, 2, 3, 4)) == datetime(2025, 1, 2, 3, 4, tzinfo=UTC)
    assert parse_temporal(date(2025, 1, 2)) == datetime(2025, 1, 2, tzinfo=UTC)
    assert parse_temporal("2025-01-02T03:04:05Z") == datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert parse_temporal("yesterday") is None
    assert parse_temporal(1735790400) is None


def test_dates_without_utc_equivalent_are_type_mismatches(registry) -> None:
    plus_five = timezone(timedelta(hours=5))
    assert parse_temporal(datetime(1, 1, 1, tzinfo=plus_five)) is None
    assert parse_temporal("0001-01-01T00:00:00+05:00") is None

    schema = registry.schema_for("audit_logs")
    document = {"action": "X", "entityType": "Y", "timestamp": datetime(1, 1, 1, tzinfo=plus_five)}
    assert collect_violations(schema, document) == [TypeMismatch("timestamp", "date", "date")]


def test_matches_type_rejects_bool_as_number() -> None:
    assert matches_type(FieldType.LONG, 5)
    assert not matches_type(FieldType.LONG, True)
    assert not matches_type(FieldType.INT, 2**40)
    assert matches_type(FieldType.DOUBLE, 3)
    assert matches_type(FieldType.DOUBLE, 3.5)
    assert not matches_type(FieldType.DOUBLE, False)
    assert matches_type(FieldType.ARRAY, ["a"])
    assert not matches_type(FieldType.ARRAY, "abc")
    assert matches_type(FieldType.OBJECT, {"k": 1})
    assert not matches_type(FieldType.OBJECT, [("k", 1)])


def test_collect_violations_reports_everything_at_once(registry) -> None:
    schema = registry.schema_for("notifications")
    document = {
        "_id": 7,
        "userId": "42",
        "type": "CALL",
        "message": "hi",
        "priority": "CRITICAL",
        "isRead": "no",
    }
    violations = collect_violations(schema, document)
    assert ReservedField("_id") in violations
    assert MissingRequiredField("title") in violations
    assert TypeMismatch("userId", "long", "string") in violations
    assert TypeMismatch("isRead", "bool", "string") in violations
    enum_fields = {v.field for v in violations if isinstance(v, InvalidEnumValue)}
    assert enum_fields == {"type", "priority"}


def test_null_required_field_is_missing(registry) -> None:
    schema = registry.schema_for("system_logs")
    violations = collect_violations(schema, {"level": "INFO", "message": None, "timestamp": NOW})
    assert violations == [MissingRequiredField("message")]


def test_null_optional_and_freeform_fields_pass(registry) -> None:
    schema = registry.schema_for("audit_logs")
    document = {
        "action": "CREATE",
        "entityType": "PATIENT",
        "timestamp": NOW,
        "oldValues": None,
        "metadata": {"nested": {"anything": [1, "two"]}},
        "extra": object(),
    }
    assert collect_violations(schema, document) == []


def test_type_mismatch_skips_enum_check(registry) -> None:
    schema = registry.schema_for("system_logs")
    violations = collect_violations(schema, {"level": 3, "message": "m", "timestamp": NOW})
    assert violations == [TypeMismatch("level", "string", "int")]


def test_every_declared_member_is_accepted(registry) -> None:
    schema = registry.schema_for("patient_documents")
    for value in schema.enums["documentType"]:
        document = {"patientId": 1, "documentType": value, "fileName": "scan.pdf"}
        assert collect_violations(schema, document) == []


def test_flag_set_stamps_once(registry) -> None:
    schema = registry.schema_for("notifications")
    before = {"isSent": False, "isRead": False}
    after = {"isSent": True, "isRead": False}
    apply_flag_transitions(schema, before, after, NOW)
    assert after["sentAt"] == NOW
    assert "readAt" not in after


def test_flag_cannot_be_unset(registry) -> None:
    schema = registry.schema_for("notifications")
    before = {"isSent": True, "sentAt": NOW}
    with pytest.raises(IllegalTransitionError, match="isSent"):
        apply_flag_transitions(schema, before, {"isSent": False, "sentAt": NOW}, NOW)


def test_stamp_cannot_be_rewritten(registry) -> None:
    schema = registry.schema_for("notifications")
    before = {"isRead": True, "readAt": NOW}
    later = datetime(2025, 3, 2, tzinfo=UTC)
    with pytest.raises(IllegalTransitionError, match="readAt"):
        apply_flag_transitions(schema, before, {"isRead": True, "readAt": later}, later)


def test_stamp_without_flag_is_rejected(registry) -> None:
    schema = registry.schema_for("notifications")
    with pytest.raises(IllegalTransitionError, match="sentAt"):
        apply_flag_transitions(schema, {"isSent": False}, {"isSent": False, "sentAt": NOW}, NOW)


def test_insert_keeps_supplied_stamp(registry) -> None:
    schema = registry.schema_for("notifications")
    sent_at = datetime(2025, 2, 1, tzinfo=UTC)
    document = {"isSent": True, "sentAt": sent_at}
    apply_flag_transitions(schema, None, document, NOW)
    assert document["sentAt"] == sent_at


def test_next_update_stamp_never_moves_back() -> None:
    earlier = datetime(2025, 1, 1, tzinfo=UTC)
    assert next_update_stamp(None, NOW) == NOW
    assert next_update_stamp(earlier, NOW) == NOW
    assert next_update_stamp(NOW, earlier) == NOW
