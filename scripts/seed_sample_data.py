from __future__ import annotations

import json
from datetime import UTC, datetime

from hms_audit.bootstrap.startup import initialize_store, setup_logging
from hms_audit.config import LOG_DIR, settings
from hms_audit.container import build_container
from hms_audit.domain.constants import EntityFamily


def seed() -> dict[str, int]:
    setup_logging(LOG_DIR, settings.log_level)
    container = build_container()
    if not initialize_store(container=container, database_url=settings.database_url, log_dir=LOG_DIR):
        raise SystemExit("Store initialisation failed; see the log directory")
    manager = container.collection_manager
    now = datetime.now(UTC)

    ids = {
        "medical_record": manager.insert(
            EntityFamily.MEDICAL_RECORDS,
            {
                "patientId": 1,
                "doctorId": 1,
                "appointmentId": 1,
                "diagnosis": "Hypertension",
                "symptoms": ["High blood pressure", "Headache", "Dizziness"],
                "treatmentPlan": "Lifestyle modifications and medication",
                "prescription": {
                    "medications": ["Amlodipine", "Lisinopril"],
                    "dosage": "5mg daily",
                    "frequency": "Once daily",
                    "duration": "30 days",
                },
                "labResults": [
                    {
                        "testName": "Blood Pressure",
                        "value": "140/90",
                        "unit": "mmHg",
                        "normalRange": "120/80",
                    }
                ],
                "recordDate": now,
            },
        ),
        "prescription": manager.insert(
            EntityFamily.PRESCRIPTIONS,
            {
                "patientId": 1,
                "doctorId": 1,
                "appointmentId": 1,
                "prescriptionDate": now,
                "medications": [
                    {
                        "name": "Amlodipine",
                        "dosage": "5mg",
                        "frequency": "Once daily",
                        "duration": "30 days",
                        "instructions": "Take with food",
                    }
                ],
                "isActive": True,
            },
        ),
        "audit_log": container.audit_trail.record(
            userId=1,
            action="CREATE",
            entityType="PATIENT",
            entityId=1,
            oldValues=None,
            newValues={"firstName": "Jane", "lastName": "Doe", "email": "jane.doe@example.com"},
            ipAddress="192.168.1.1",
            userAgent="Mozilla/5.0",
        ),
        "notification": manager.insert(
            EntityFamily.NOTIFICATIONS,
            {
                "userId": 1,
                "type": "APPOINTMENT",
                "title": "Appointment Confirmation",
                "message": "Your appointment with Dr. Smith has been confirmed for tomorrow at 10:00 AM",
                "priority": "MEDIUM",
                "isRead": False,
                "isSent": True,
                "sentVia": "EMAIL",
            },
        ),
    }
    return ids


if __name__ == "__main__":
    print("Seeded:", json.dumps(seed(), indent=2))
