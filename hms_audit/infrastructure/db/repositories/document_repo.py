from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any, cast

from sqlalchemy import Table, insert, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from hms_audit.domain.models.schema import IndexDirection
from hms_audit.infrastructure.db.models_sqlalchemy import document_table, field_expr


class DocumentRepository:
    """Row access for collection tables; bodies go in and out already encoded."""

    def table(self, collection_name: str) -> Table:
        return document_table(collection_name)

    def insert(self, session: Session, collection_name: str, body: dict[str, Any]) -> int:
        table = self.table(collection_name)
        result = session.execute(insert(table).values(body=body))
        return cast(int, result.inserted_primary_key[0])

    def get(self, session: Session, collection_name: str, document_id: int) -> dict[str, Any] | None:
        table = self.table(collection_name)
        row = session.execute(select(table.c.body).where(table.c.id == document_id)).first()
        if row is None:
            return None
        return dict(row[0])

    def replace(self, session: Session, collection_name: str, document_id: int, body: dict[str, Any]) -> bool:
        table = self.table(collection_name)
        result = session.execute(update(table).where(table.c.id == document_id).values(body=body))
        return result.rowcount == 1

    def _conditions(self, table: Table, criteria: Mapping[str, Any]) -> list[ColumnElement]:
        conditions: list[ColumnElement] = []
        for field, condition in criteria.items():
            expr = field_expr(table, field)
            if isinstance(condition, Mapping):
                for op, value in condition.items():
                    if op == "$gt":
                        conditions.append(expr > value)
                    elif op == "$gte":
                        conditions.append(expr >= value)
                    elif op == "$lt":
                        conditions.append(expr < value)
                    elif op == "$lte":
                        conditions.append(expr <= value)
                    elif op == "$in":
                        conditions.append(expr.in_(list(value)))
                    else:
                        raise ValueError(f"Unsupported operator {op} on {field}")
            elif condition is None:
                conditions.append(expr.is_(None))
            else:
                conditions.append(expr == condition)
        return conditions

    def stream(
        self,
        session: Session,
        collection_name: str,
        *,
        criteria: Mapping[str, Any],
        sort: Sequence[tuple[str, IndexDirection]] = (),
        limit: int | None = None,
        batch_size: int = 100,
    ) -> Iterator[tuple[int, dict[str, Any]]]:
        table = self.table(collection_name)
        stmt = select(table.c.id, table.c.body).where(*self._conditions(table, criteria))
        for field, direction in sort:
            expr = field_expr(table, field)
            stmt = stmt.order_by(expr.desc() if direction is IndexDirection.DESC else expr.asc())
        stmt = stmt.order_by(table.c.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        for row in session.execute(stmt).yield_per(batch_size):
            yield cast(int, row.id), dict(row.body)
