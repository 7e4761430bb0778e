from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from hms_audit.domain.constants import (
    DeliveryChannel,
    DocumentType,
    EntityFamily,
    LogLevel,
    NotificationPriority,
    NotificationType,
)
from hms_audit.domain.errors import UnknownEntityFamilyError
from hms_audit.domain.models.schema import FieldType as T
from hms_audit.domain.models.schema import FlagTransition, IndexDirection, QueryPattern, Schema

ASC = IndexDirection.ASC
DESC = IndexDirection.DESC


def _lookup(*fields: str) -> QueryPattern:
    return QueryPattern(equality=fields)


def _recent(field: str, *equality: str) -> QueryPattern:
    return QueryPattern(equality=equality, range_field=field, direction=DESC)


def _upcoming(field: str, *equality: str) -> QueryPattern:
    return QueryPattern(equality=equality, range_field=field, direction=ASC)


DEFAULT_SCHEMAS: tuple[Schema, ...] = (
    Schema(
        family=EntityFamily.MEDICAL_RECORDS,
        required=frozenset({"patientId", "doctorId", "recordDate"}),
        fields={
            "patientId": T.LONG,
            "doctorId": T.LONG,
            "appointmentId": T.LONG,
            "diagnosis": T.STRING,
            "symptoms": T.ARRAY,
            "treatmentPlan": T.STRING,
            "prescription": T.OBJECT,
            "labResults": T.ARRAY,
            "images": T.ARRAY,
            "recordDate": T.DATE,
            "createdAt": T.DATE,
            "updatedAt": T.DATE,
        },
        query_patterns=(
            _lookup("patientId"),
            _lookup("doctorId"),
            _lookup("appointmentId"),
            _recent("recordDate"),
            _recent("recordDate", "patientId"),
        ),
    ),
    Schema(
        family=EntityFamily.PRESCRIPTIONS,
        required=frozenset({"patientId", "doctorId", "prescriptionDate"}),
        fields={
            "patientId": T.LONG,
            "doctorId": T.LONG,
            "appointmentId": T.LONG,
            "prescriptionDate": T.DATE,
            "medications": T.ARRAY,
            "dosage": T.OBJECT,
            "frequency": T.STRING,
            "duration": T.STRING,
            "instructions": T.STRING,
            "sideEffects": T.ARRAY,
            "isActive": T.BOOL,
            "createdAt": T.DATE,
            "updatedAt": T.DATE,
        },
        query_patterns=(
            _lookup("patientId"),
            _lookup("doctorId"),
            _recent("prescriptionDate"),
            _lookup("isActive"),
        ),
        soft_delete_field="isActive",
    ),
    Schema(
        family=EntityFamily.AUDIT_LOGS,
        required=frozenset({"action", "entityType", "timestamp"}),
        fields={
            "userId": T.LONG,
            "action": T.STRING,
            "entityType": T.STRING,
            "entityId": T.LONG,
            "oldValues": T.OBJECT,
            "newValues": T.OBJECT,
            "ipAddress": T.STRING,
            "userAgent": T.STRING,
            "sessionId": T.STRING,
            "timestamp": T.DATE,
            "metadata": T.OBJECT,
            "createdAt": T.DATE,
        },
        query_patterns=(
            _lookup("userId"),
            _lookup("action"),
            _lookup("entityType", "entityId"),
            _recent("timestamp"),
            _recent("timestamp", "userId"),
        ),
        append_only=True,
    ),
    Schema(
        family=EntityFamily.SYSTEM_LOGS,
        required=frozenset({"level", "message", "timestamp"}),
        fields={
            "level": T.STRING,
            "message": T.STRING,
            "service": T.STRING,
            "className": T.STRING,
            "methodName": T.STRING,
            "lineNumber": T.INT,
            "stackTrace": T.STRING,
            "userId": T.LONG,
            "requestId": T.STRING,
            "timestamp": T.DATE,
            "metadata": T.OBJECT,
            "createdAt": T.DATE,
        },
        enums={"level": LogLevel.values()},
        query_patterns=(
            _lookup("level"),
            _lookup("service"),
            _recent("timestamp"),
            _lookup("userId"),
            _recent("timestamp", "level"),
        ),
        append_only=True,
    ),
    Schema(
        family=EntityFamily.NOTIFICATIONS,
        required=frozenset({"userId", "type", "title", "message"}),
        fields={
            "userId": T.LONG,
            "type": T.STRING,
            "title": T.STRING,
            "message": T.STRING,
            "priority": T.STRING,
            "isRead": T.BOOL,
            "isSent": T.BOOL,
            "sentVia": T.STRING,
            "scheduledAt": T.DATE,
            "sentAt": T.DATE,
            "readAt": T.DATE,
            "metadata": T.OBJECT,
            "createdAt": T.DATE,
            "updatedAt": T.DATE,
        },
        enums={
            "type": NotificationType.values(),
            "priority": NotificationPriority.values(),
            "sentVia": DeliveryChannel.values(),
        },
        query_patterns=(
            _lookup("userId"),
            _lookup("type"),
            _lookup("isRead"),
            _lookup("isSent"),
            _lookup("userId", "isRead"),
            _upcoming("scheduledAt"),
        ),
        flag_transitions=(
            FlagTransition(flag="isSent", stamp_field="sentAt"),
            FlagTransition(flag="isRead", stamp_field="readAt"),
        ),
    ),
    Schema(
        family=EntityFamily.PATIENT_DOCUMENTS,
        required=frozenset({"patientId", "documentType", "fileName"}),
        fields={
            "patientId": T.LONG,
            "documentType": T.STRING,
            "fileName": T.STRING,
            "originalFileName": T.STRING,
            "fileSize": T.LONG,
            "mimeType": T.STRING,
            "filePath": T.STRING,
            "uploadedBy": T.LONG,
            "description": T.STRING,
            "tags": T.ARRAY,
            "isActive": T.BOOL,
            "uploadedAt": T.DATE,
            "createdAt": T.DATE,
            "updatedAt": T.DATE,
        },
        enums={"documentType": DocumentType.values()},
        query_patterns=(
            _lookup("patientId"),
            _lookup("documentType"),
            _lookup("uploadedBy"),
            _lookup("isActive"),
            _lookup("patientId", "documentType"),
        ),
        soft_delete_field="isActive",
    ),
    Schema(
        family=EntityFamily.PERFORMANCE_METRICS,
        required=frozenset({"service", "metric", "value", "timestamp"}),
        fields={
            "service": T.STRING,
            "metric": T.STRING,
            "value": T.DOUBLE,
            "unit": T.STRING,
            "tags": T.OBJECT,
            "timestamp": T.DATE,
            "createdAt": T.DATE,
        },
        query_patterns=(
            _lookup("service"),
            _lookup("metric"),
            _recent("timestamp"),
            _recent("timestamp", "service", "metric"),
        ),
        append_only=True,
    ),
)


class SchemaRegistry:
    """Read-only mapping of entity family name to its schema."""

    def __init__(self, schemas: Iterable[Schema]) -> None:
        table: dict[str, Schema] = {}
        for schema in schemas:
            name = str(schema.family)
            if name in table:
                raise ValueError(f"Duplicate schema for {name}")
            table[name] = schema
        self._schemas: Mapping[str, Schema] = MappingProxyType(table)

    def schema_for(self, family: str) -> Schema:
        try:
            return self._schemas[str(family)]
        except KeyError:
            raise UnknownEntityFamilyError(str(family)) from None

    def families(self) -> tuple[str, ...]:
        return tuple(self._schemas)

    def __contains__(self, family: object) -> bool:
        return str(family) in self._schemas


def build_default_registry() -> SchemaRegistry:
    return SchemaRegistry(DEFAULT_SCHEMAS)
