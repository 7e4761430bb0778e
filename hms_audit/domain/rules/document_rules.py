from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, date, datetime, time
from typing import Any

from hms_audit.domain.constants import DOCUMENT_ID_FIELD
from hms_audit.domain.errors import (
    IllegalTransitionError,
    InvalidEnumValue,
    MissingRequiredField,
    ReservedField,
    TypeMismatch,
    Violation,
)
from hms_audit.domain.models.schema import FieldType, Schema

INT32_RANGE = (-(2**31), 2**31 - 1)
INT64_RANGE = (-(2**63), 2**63 - 1)


def parse_temporal(value: Any) -> datetime | None:
    """Return an aware UTC datetime for a recognised temporal value, else None."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        try:
            return value.astimezone(UTC)
        except OverflowError:
            # e.g. 0001-01-01 at +05:00 has no UTC equivalent
            return None
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
        return parse_temporal(parsed)
    return None


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int" if INT32_RANGE[0] <= value <= INT32_RANGE[1] else "long"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (datetime, date)):
        return "date"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return "array"
    return type(value).__name__


def matches_type(kind: FieldType, value: Any) -> bool:
    if kind is FieldType.STRING:
        return isinstance(value, str)
    if kind is FieldType.BOOL:
        return isinstance(value, bool)
    if kind is FieldType.INT:
        return isinstance(value, int) and not isinstance(value, bool) and INT32_RANGE[0] <= value <= INT32_RANGE[1]
    if kind is FieldType.LONG:
        return isinstance(value, int) and not isinstance(value, bool) and INT64_RANGE[0] <= value <= INT64_RANGE[1]
    if kind is FieldType.DOUBLE:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind is FieldType.DATE:
        return parse_temporal(value) is not None
    if kind is FieldType.ARRAY:
        return isinstance(value, (list, tuple))
    if kind is FieldType.OBJECT:
        return isinstance(value, Mapping)
    return False


def collect_violations(schema: Schema, document: Mapping[str, Any]) -> list[Violation]:
    violations: list[Violation] = []
    if DOCUMENT_ID_FIELD in document:
        violations.append(ReservedField(DOCUMENT_ID_FIELD))

    for name in sorted(schema.required):
        if document.get(name) is None:
            violations.append(MissingRequiredField(name))

    for name, kind in schema.fields.items():
        value = document.get(name)
        if value is None:
            continue
        if not matches_type(kind, value):
            violations.append(TypeMismatch(name, kind.value, _describe(value)))
            continue
        allowed = schema.enums.get(name)
        if allowed is not None and value not in allowed:
            violations.append(InvalidEnumValue(name, value, tuple(sorted(allowed))))

    # enum fields without a declared type still get the membership check
    for name, allowed in schema.enums.items():
        if name in schema.fields:
            continue
        value = document.get(name)
        if value is not None and (not isinstance(value, str) or value not in allowed):
            violations.append(InvalidEnumValue(name, value, tuple(sorted(allowed))))
    return violations


def apply_flag_transitions(
    schema: Schema,
    before: Mapping[str, Any] | None,
    after: dict[str, Any],
    now: datetime,
) -> None:
    """Stamp newly set one-way flags in ``after``; reject unsetting or restamping."""
    for transition in schema.flag_transitions:
        was_set = bool(before.get(transition.flag)) if before is not None else False
        is_set = after.get(transition.flag) is True
        previous_stamp = before.get(transition.stamp_field) if before is not None else None

        if was_set and not is_set:
            raise IllegalTransitionError(schema.family, transition.flag, "cannot be unset once set")
        if was_set:
            if parse_temporal(after.get(transition.stamp_field)) != parse_temporal(previous_stamp):
                raise IllegalTransitionError(schema.family, transition.stamp_field, "is set only once")
            continue
        if is_set:
            if before is None and after.get(transition.stamp_field) is not None:
                continue
            after[transition.stamp_field] = now
        elif after.get(transition.stamp_field) is not None:
            raise IllegalTransitionError(
                schema.family,
                transition.stamp_field,
                f"can only be stamped when {transition.flag} is set",
            )


def next_update_stamp(previous: datetime | None, now: datetime) -> datetime:
    if previous is None:
        return now
    stamp = max(previous, now)
    assert stamp >= previous, "updatedAt moved backwards"
    return stamp
