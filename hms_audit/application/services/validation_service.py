from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from hms_audit.domain.errors import DocumentValidationError, Violation
from hms_audit.domain.rules.document_rules import collect_violations
from hms_audit.domain.schema_registry import SchemaRegistry


class DocumentValidator:
    """Checks candidate documents against their family schema.

    Every violation is collected, so one rejection lists all the fixes a caller
    needs. Nothing here mutates the document or touches storage.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry

    def check(self, family: str, document: Mapping[str, Any]) -> list[Violation]:
        schema = self.registry.schema_for(family)
        return collect_violations(schema, document)

    def validate(self, family: str, document: Mapping[str, Any]) -> None:
        violations = self.check(family, document)
        if violations:
            raise DocumentValidationError(str(family), violations)
