from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from hms_audit.domain.constants import DOCUMENT_ID_FIELD
from hms_audit.domain.models.schema import FieldType, Schema
from hms_audit.domain.rules.document_rules import parse_temporal


def format_timestamp(value: datetime) -> str:
    # Fixed width, UTC: string order equals time order inside json_extract comparisons.
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def encode_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        stamp = parse_temporal(value)
        assert stamp is not None
        return format_timestamp(stamp)
    if isinstance(value, Mapping):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def encode_document(schema: Schema, document: Mapping[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for name, value in document.items():
        if name == DOCUMENT_ID_FIELD:
            continue
        if schema.fields.get(name) is FieldType.DATE and value is not None:
            stamp = parse_temporal(value)
            if stamp is None:
                raise ValueError(f"{name}: not a recognised date")
            body[name] = format_timestamp(stamp)
        else:
            body[name] = encode_value(value)
    return body


def encode_filter_value(schema: Schema, field: str, value: Any) -> Any:
    if value is None:
        return None
    if schema.fields.get(field) is FieldType.DATE:
        stamp = parse_temporal(value)
        if stamp is None:
            raise ValueError(f"{field}: not a recognised date")
        return format_timestamp(stamp)
    if isinstance(value, bool):
        # json_extract yields 1/0 for JSON true/false
        return int(value)
    return encode_value(value)


def decode_document(schema: Schema, document_id: int, body: Mapping[str, Any]) -> dict[str, Any]:
    document: dict[str, Any] = {DOCUMENT_ID_FIELD: document_id}
    for name, value in body.items():
        if schema.fields.get(name) is FieldType.DATE and isinstance(value, str):
            document[name] = parse_temporal(value) or value
        else:
            document[name] = value
    return document


def build_json_schema(schema: Schema) -> dict[str, Any]:
    """The validator document attached to a collection, in $jsonSchema form."""
    properties: dict[str, Any] = {}
    for name, kind in schema.fields.items():
        allowed = schema.enums.get(name)
        if allowed is not None:
            properties[name] = {"enum": sorted(allowed)}
        else:
            properties[name] = {"bsonType": kind.value}
    for name, allowed in schema.enums.items():
        properties.setdefault(name, {"enum": sorted(allowed)})
    return {
        "bsonType": "object",
        "required": sorted(schema.required),
        "properties": properties,
    }
