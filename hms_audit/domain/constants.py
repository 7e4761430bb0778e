from __future__ import annotations

from enum import StrEnum


class EntityFamily(StrEnum):
    MEDICAL_RECORDS = "medical_records"
    PRESCRIPTIONS = "prescriptions"
    AUDIT_LOGS = "audit_logs"
    SYSTEM_LOGS = "system_logs"
    NOTIFICATIONS = "notifications"
    PATIENT_DOCUMENTS = "patient_documents"
    PERFORMANCE_METRICS = "performance_metrics"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class LogLevel(StrEnum):
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class NotificationType(StrEnum):
    APPOINTMENT = "APPOINTMENT"
    BILL = "BILL"
    REMINDER = "REMINDER"
    SYSTEM = "SYSTEM"
    EMERGENCY = "EMERGENCY"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class NotificationPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class DeliveryChannel(StrEnum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"
    IN_APP = "IN_APP"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class DocumentType(StrEnum):
    LAB_REPORT = "LAB_REPORT"
    XRAY = "XRAY"
    MRI = "MRI"
    PRESCRIPTION = "PRESCRIPTION"
    MEDICAL_CERTIFICATE = "MEDICAL_CERTIFICATE"
    INSURANCE = "INSURANCE"
    OTHER = "OTHER"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"
DOCUMENT_ID_FIELD = "_id"
