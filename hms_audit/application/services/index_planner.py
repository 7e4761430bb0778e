from __future__ import annotations

from collections.abc import Sequence

from hms_audit.domain.models.schema import IndexDirection, IndexSpec
from hms_audit.domain.rules.index_rules import plan_indexes, select_index
from hms_audit.domain.schema_registry import SchemaRegistry


class IndexPlanner:
    """Derives each family's indexes from its declared query patterns."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry

    def indexes_for(self, family: str) -> tuple[IndexSpec, ...]:
        return plan_indexes(self.registry.schema_for(family).query_patterns)

    def select(
        self,
        family: str,
        *,
        equality: Sequence[str] = (),
        range_field: str | None = None,
        sort: Sequence[tuple[str, IndexDirection]] = (),
    ) -> IndexSpec | None:
        return select_index(self.indexes_for(family), equality, range_field, sort)
