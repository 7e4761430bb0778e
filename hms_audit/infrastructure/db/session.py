from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from hms_audit.infrastructure.db.engine import get_engine

SessionScope = Callable[[], AbstractContextManager[Session]]


def build_session_scope(bind: Engine) -> SessionScope:
    """Transactional scope factory over ``bind``: commit on success, roll back on error."""
    factory = sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False, future=True)

    @contextmanager
    def _scope() -> Iterator[Session]:
        session: Session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _scope


engine = get_engine()
session_scope = build_session_scope(engine)
