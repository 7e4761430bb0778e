from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Keep the package's import-time data dir out of the user's profile.
os.environ.setdefault("HMS_AUDIT_DATA_DIR", tempfile.mkdtemp(prefix="hms-audit-tests-"))

from hms_audit.application.services.collection_service import CollectionManager  # noqa: E402
from hms_audit.domain.schema_registry import build_default_registry  # noqa: E402
from hms_audit.infrastructure.db.engine import get_engine  # noqa: E402
from hms_audit.infrastructure.db.models_sqlalchemy import Base  # noqa: E402
from hms_audit.infrastructure.db.session import SessionScope, build_session_scope  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 9, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def make_session_factory(db_path: Path) -> SessionScope:
    engine = get_engine(f"sqlite:///{db_path.as_posix()}")
    Base.metadata.create_all(engine)
    return build_session_scope(engine)


@pytest.fixture
def session_factory(tmp_path: Path) -> SessionScope:
    return make_session_factory(tmp_path / "audit.db")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(session_factory, clock: FakeClock) -> CollectionManager:
    manager = CollectionManager(
        registry=build_default_registry(),
        session_factory=session_factory,
        clock=clock,
    )
    manager.ensure_all()
    return manager
