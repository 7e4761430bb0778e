from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from hms_audit.application.services.audit_trail_service import AuditTrailWriter
from hms_audit.application.services.collection_service import CollectionManager
from hms_audit.application.services.index_planner import IndexPlanner
from hms_audit.application.services.validation_service import DocumentValidator
from hms_audit.config import settings
from hms_audit.domain.constants import EntityFamily
from hms_audit.domain.schema_registry import SchemaRegistry, build_default_registry
from hms_audit.infrastructure.db.collection_ddl import CollectionDdlManager
from hms_audit.infrastructure.db.repositories.document_repo import DocumentRepository
from hms_audit.infrastructure.db.session import session_scope


@dataclass
class Container:
    registry: SchemaRegistry
    validator: DocumentValidator
    planner: IndexPlanner
    document_repo: DocumentRepository
    ddl_manager: CollectionDdlManager

    collection_manager: CollectionManager
    audit_trail: AuditTrailWriter
    system_log: AuditTrailWriter
    performance_metrics: AuditTrailWriter


def build_container(
    registry: SchemaRegistry | None = None,
    session_factory: Callable = session_scope,
) -> Container:
    registry = registry or build_default_registry()
    validator = DocumentValidator(registry)
    planner = IndexPlanner(registry)
    document_repo = DocumentRepository()
    ddl_manager = CollectionDdlManager(session_factory=session_factory)

    collection_manager = CollectionManager(
        registry=registry,
        validator=validator,
        planner=planner,
        repo=document_repo,
        ddl_manager=ddl_manager,
        session_factory=session_factory,
        strict_queries=settings.strict_queries,
    )

    return Container(
        registry=registry,
        validator=validator,
        planner=planner,
        document_repo=document_repo,
        ddl_manager=ddl_manager,
        collection_manager=collection_manager,
        audit_trail=AuditTrailWriter(collection_manager, EntityFamily.AUDIT_LOGS),
        system_log=AuditTrailWriter(collection_manager, EntityFamily.SYSTEM_LOGS),
        performance_metrics=AuditTrailWriter(collection_manager, EntityFamily.PERFORMANCE_METRICS),
    )
