from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from hms_audit.application.services.collection_service import CollectionManager

TIMESTAMP_FIELD = "timestamp"


class AuditTrailWriter:
    """Write path for one append-only family: ensure, insert and read. No update or delete."""

    def __init__(self, manager: CollectionManager, family: str) -> None:
        schema = manager.registry.schema_for(family)
        if not schema.append_only:
            raise ValueError(f"{family} is not an append-only family")
        self._manager = manager
        self.family = str(schema.family)

    def ensure(self) -> list[str]:
        return self._manager.ensure(self.family)

    def insert(self, document: Mapping[str, Any]) -> int:
        return self._manager.insert(self.family, document)

    def record(self, **fields: Any) -> int:
        """Insert an entry stamped with the current time unless a timestamp is given."""
        if fields.get(TIMESTAMP_FIELD) is None:
            fields[TIMESTAMP_FIELD] = self._manager.clock()
        return self.insert(fields)

    def find(
        self,
        criteria: Mapping[str, Any] | None = None,
        sort: Sequence[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        return self._manager.find(self.family, criteria, sort, limit)
