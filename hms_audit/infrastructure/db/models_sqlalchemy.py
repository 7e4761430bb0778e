from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, MetaData, String, Table, Text, func, literal_column
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql.elements import ColumnElement

from hms_audit.domain.models.schema import IndexDirection, IndexSpec

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=naming_convention)

# Collections are created on demand by CollectionDdlManager, not by migrations.
document_metadata = MetaData()


class Base(DeclarativeBase):
    metadata = metadata


def utc_now() -> datetime:
    return datetime.now(UTC)


class CollectionValidator(Base):
    __tablename__ = "collection_validators"

    collection_name = Column(String, primary_key=True)
    json_schema = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utc_now)


def _check_identifier(name: str) -> str:
    if not name.isidentifier():
        raise ValueError(f"Invalid field or collection name: {name!r}")
    return name


def document_table(collection_name: str) -> Table:
    _check_identifier(collection_name)
    existing = document_metadata.tables.get(collection_name)
    if existing is not None:
        return existing
    return Table(
        collection_name,
        document_metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("body", JSON, nullable=False),
        Column("inserted_at", DateTime, nullable=False, default=utc_now),
    )


def field_expr(table: Table, field: str) -> ColumnElement:
    # The JSON path is rendered inline so index expressions and query expressions match exactly.
    path = literal_column(f"'$.{_check_identifier(field)}'")
    return func.json_extract(table.c.body, path)


def build_index(table: Table, collection_name: str, spec: IndexSpec) -> Index:
    index_name = spec.name_for(collection_name)
    for index in table.indexes:
        if index.name == index_name:
            return index
    expressions = []
    for field, direction in spec.keys:
        expr = field_expr(table, field)
        expressions.append(expr.desc() if direction is IndexDirection.DESC else expr.asc())
    return Index(index_name, *expressions)
