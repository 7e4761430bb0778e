from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from hms_audit.application.dto.query_dto import FindQuery
from hms_audit.application.services.index_planner import IndexPlanner
from hms_audit.application.services.validation_service import DocumentValidator
from hms_audit.config import settings
from hms_audit.domain.constants import CREATED_AT_FIELD, DOCUMENT_ID_FIELD, UPDATED_AT_FIELD
from hms_audit.domain.errors import (
    DocumentNotFoundError,
    DocumentValidationError,
    ImmutableEntityError,
    ImmutableFieldError,
    InvalidQueryError,
    SoftDeleteUnsupportedError,
    StaleWriteError,
    StorageError,
    UnindexedQueryError,
)
from hms_audit.domain.models.schema import Schema
from hms_audit.domain.rules.document_rules import apply_flag_transitions, next_update_stamp, parse_temporal
from hms_audit.domain.schema_registry import SchemaRegistry
from hms_audit.infrastructure.db.collection_ddl import CollectionDdlManager
from hms_audit.infrastructure.db.document_codec import (
    build_json_schema,
    decode_document,
    encode_document,
    encode_filter_value,
)
from hms_audit.infrastructure.db.repositories.document_repo import DocumentRepository
from hms_audit.infrastructure.db.session import session_scope


def utc_now() -> datetime:
    return datetime.now(UTC)


class CollectionManager:
    """Entry point for schema setup and validated reads/writes on every entity family."""

    def __init__(
        self,
        registry: SchemaRegistry,
        validator: DocumentValidator | None = None,
        planner: IndexPlanner | None = None,
        repo: DocumentRepository | None = None,
        ddl_manager: CollectionDdlManager | None = None,
        session_factory: Callable = session_scope,
        clock: Callable[[], datetime] = utc_now,
        strict_queries: bool = settings.strict_queries,
    ) -> None:
        self.registry = registry
        self.validator = validator or DocumentValidator(registry)
        self.planner = planner or IndexPlanner(registry)
        self.repo = repo or DocumentRepository()
        self.ddl_manager = ddl_manager or CollectionDdlManager(session_factory=session_factory)
        self.session_factory = session_factory
        self.clock = clock
        self.strict_queries = strict_queries
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def _storage_errors(self, action: str, family: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.logger.exception("%s on %s failed", action, family)
            raise StorageError(f"{action} on {family} failed: {exc}") from exc

    def _now(self) -> datetime:
        stamp = parse_temporal(self.clock())
        assert stamp is not None
        return stamp

    def ensure(self, family: str) -> list[str]:
        schema = self.registry.schema_for(family)
        name = str(schema.family)
        with self._storage_errors("ensure", name):
            ensured = self.ddl_manager.ensure_collection(
                name,
                json_schema=build_json_schema(schema),
                indexes=self.planner.indexes_for(name),
            )
        self.logger.info("Collection %s ready with %d indexes", name, len(ensured))
        return ensured

    def ensure_all(self) -> dict[str, list[str]]:
        return {family: self.ensure(family) for family in self.registry.families()}

    def index_names(self, family: str) -> list[str]:
        name = str(self.registry.schema_for(family).family)
        with self._storage_errors("index_names", name):
            return self.ddl_manager.index_names(name)

    def insert(self, family: str, document: Mapping[str, Any]) -> int:
        schema = self.registry.schema_for(family)
        name = str(schema.family)
        self._validate(name, document)
        now = self._now()
        body = dict(document)
        if body.get(CREATED_AT_FIELD) is None:
            body[CREATED_AT_FIELD] = now
        if schema.mutable and UPDATED_AT_FIELD in schema.fields and body.get(UPDATED_AT_FIELD) is None:
            body[UPDATED_AT_FIELD] = body[CREATED_AT_FIELD]
        apply_flag_transitions(schema, None, body, now)
        encoded = encode_document(schema, body)
        with self._storage_errors("insert", name):
            with self.session_factory() as session:
                document_id = self.repo.insert(session, name, encoded)
        self.logger.debug("Inserted %s #%s", name, document_id)
        return document_id

    def get(self, family: str, document_id: int) -> dict[str, Any]:
        schema = self.registry.schema_for(family)
        name = str(schema.family)
        with self._storage_errors("get", name):
            with self.session_factory() as session:
                body = self.repo.get(session, name, document_id)
        if body is None:
            raise DocumentNotFoundError(name, document_id)
        return decode_document(schema, document_id, body)

    def update(self, family: str, document_id: int, patch: Mapping[str, Any]) -> dict[str, Any]:
        schema = self.registry.schema_for(family)
        name = str(schema.family)
        if schema.append_only:
            raise ImmutableEntityError(name)
        with self._storage_errors("update", name):
            with self.session_factory() as session:
                stored = self.repo.get(session, name, document_id)
                if stored is None:
                    raise DocumentNotFoundError(name, document_id)
                before = decode_document(schema, document_id, stored)
                before.pop(DOCUMENT_ID_FIELD)
                merged = self._merge(schema, document_id, before, patch)
                self.repo.replace(session, name, document_id, encode_document(schema, merged))
        self.logger.debug("Updated %s #%s", name, document_id)
        return {DOCUMENT_ID_FIELD: document_id, **merged}

    def _merge(
        self,
        schema: Schema,
        document_id: int,
        before: dict[str, Any],
        patch: Mapping[str, Any],
    ) -> dict[str, Any]:
        name = str(schema.family)
        if CREATED_AT_FIELD in patch and parse_temporal(patch[CREATED_AT_FIELD]) != parse_temporal(
            before.get(CREATED_AT_FIELD)
        ):
            raise ImmutableFieldError(name, CREATED_AT_FIELD)

        previous = parse_temporal(before.get(UPDATED_AT_FIELD))
        requested = parse_temporal(patch.get(UPDATED_AT_FIELD))
        if requested is not None and previous is not None and requested < previous:
            raise StaleWriteError(name, document_id)

        now = self._now()
        merged = {**before, **patch}
        apply_flag_transitions(schema, before, merged, now)
        self._validate(name, merged)
        if UPDATED_AT_FIELD in schema.fields:
            merged[UPDATED_AT_FIELD] = next_update_stamp(previous, now)
        return merged

    def deactivate(self, family: str, document_id: int) -> dict[str, Any]:
        schema = self.registry.schema_for(family)
        if schema.soft_delete_field is None:
            if schema.append_only:
                raise ImmutableEntityError(str(schema.family))
            raise SoftDeleteUnsupportedError(str(schema.family))
        return self.update(family, document_id, {schema.soft_delete_field: False})

    def find(
        self,
        family: str,
        criteria: Mapping[str, Any] | None = None,
        sort: Sequence[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        schema = self.registry.schema_for(family)
        name = str(schema.family)
        try:
            query = FindQuery(criteria=dict(criteria or {}), sort=list(sort or []), limit=limit)
            encoded = self._encode_criteria(schema, query.criteria)
        except (ValidationError, ValueError) as exc:
            raise InvalidQueryError(name, str(exc)) from exc
        self._plan_query(name, query)
        return self._stream(schema, encoded, query)

    def _plan_query(self, name: str, query: FindQuery) -> None:
        if not query.criteria and not query.sort:
            return
        index = self.planner.select(
            name,
            equality=query.equality_fields(),
            range_field=query.range_field,
            sort=query.sort,
        )
        if index is not None:
            self.logger.debug("Query on %s served by %s", name, index.name_for(name))
            return
        fields = [*query.criteria, *(field for field, _ in query.sort)]
        if self.strict_queries:
            raise UnindexedQueryError(name, fields)
        self.logger.warning("Unindexed query on %s over %s", name, ", ".join(fields))

    def _encode_criteria(self, schema: Schema, criteria: Mapping[str, Any]) -> dict[str, Any]:
        encoded: dict[str, Any] = {}
        for field, condition in criteria.items():
            if isinstance(condition, Mapping):
                encoded[field] = {
                    op: (
                        [encode_filter_value(schema, field, item) for item in value]
                        if op == "$in"
                        else encode_filter_value(schema, field, value)
                    )
                    for op, value in condition.items()
                }
            else:
                encoded[field] = encode_filter_value(schema, field, condition)
        return encoded

    def _stream(self, schema: Schema, criteria: dict[str, Any], query: FindQuery) -> Iterator[dict[str, Any]]:
        name = str(schema.family)
        with self._storage_errors("find", name):
            with self.session_factory() as session:
                for document_id, body in self.repo.stream(
                    session,
                    name,
                    criteria=criteria,
                    sort=query.sort,
                    limit=query.limit,
                ):
                    yield decode_document(schema, document_id, body)

    def _validate(self, name: str, document: Mapping[str, Any]) -> None:
        try:
            self.validator.validate(name, document)
        except DocumentValidationError as exc:
            self.logger.info("Rejected %s document: %s", name, exc)
            raise
