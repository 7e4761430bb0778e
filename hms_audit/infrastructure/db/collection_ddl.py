from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateIndex, CreateTable

from hms_audit.domain.models.schema import IndexSpec
from hms_audit.infrastructure.db.models_sqlalchemy import (
    CollectionValidator,
    build_index,
    document_table,
    utc_now,
)
from hms_audit.infrastructure.db.session import session_scope


class CollectionDdlManager:
    """Creates collection tables, validator entries and expression indexes, all idempotently."""

    def __init__(self, session_factory: Callable = session_scope) -> None:
        self.session_factory = session_factory
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def _session_or_new(self, session: Session | None = None) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with self.session_factory() as managed:
            yield managed

    def ensure_collection(
        self,
        collection_name: str,
        *,
        json_schema: dict[str, Any],
        indexes: Iterable[IndexSpec],
        session: Session | None = None,
    ) -> list[str]:
        table = document_table(collection_name)
        with self._session_or_new(session) as db:
            self.logger.debug("[DDL] ensure %s start", collection_name)
            db.connection().execute(CreateTable(table, if_not_exists=True))
            db.connection().execute(CreateTable(CollectionValidator.__table__, if_not_exists=True))
            self._attach_validator(db, collection_name, json_schema)
            ensured = []
            for spec in indexes:
                index = build_index(table, collection_name, spec)
                db.connection().execute(CreateIndex(index, if_not_exists=True))
                self.logger.debug("[DDL] index %s ensured", index.name)
                ensured.append(str(index.name))
            return ensured

    def _attach_validator(self, session: Session, collection_name: str, json_schema: dict[str, Any]) -> None:
        payload = json.dumps(json_schema, sort_keys=True)
        stmt = sqlite_insert(CollectionValidator).values(
            collection_name=collection_name,
            json_schema=payload,
            updated_at=utc_now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CollectionValidator.collection_name],
            set_={"json_schema": stmt.excluded.json_schema, "updated_at": stmt.excluded.updated_at},
            where=CollectionValidator.json_schema != stmt.excluded.json_schema,
        )
        session.execute(stmt)

    def get_validator(self, collection_name: str, session: Session | None = None) -> dict[str, Any] | None:
        with self._session_or_new(session) as db:
            row = db.get(CollectionValidator, collection_name)
            if row is None:
                return None
            return json.loads(str(row.json_schema))

    def collection_exists(self, collection_name: str, session: Session | None = None) -> bool:
        with self._session_or_new(session) as db:
            return (
                db.execute(
                    text("SELECT 1 FROM sqlite_master WHERE type='table' AND name=:name"),
                    {"name": collection_name},
                ).first()
                is not None
            )

    def index_names(self, collection_name: str, session: Session | None = None) -> list[str]:
        with self._session_or_new(session) as db:
            return sorted(
                db.execute(
                    text(
                        "SELECT name FROM sqlite_master "
                        "WHERE type='index' AND tbl_name=:tbl AND sql IS NOT NULL"
                    ),
                    {"tbl": collection_name},
                ).scalars()
            )
