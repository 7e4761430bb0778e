from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

from hms_audit.config import settings


def _prepare_connection(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        # Collections are queried and indexed through the JSON1 functions.
        cursor.execute("SELECT json_extract('{\"probe\": 1}', '$.probe')")
    finally:
        cursor.close()


def get_engine(database_url: str | None = None) -> Engine:
    url = make_url(database_url or settings.database_url)
    if url.get_backend_name() != "sqlite":
        raise ValueError(f"Collections are stored in SQLite; unsupported backend {url.get_backend_name()!r}")
    engine = create_engine(
        url,
        echo=settings.echo_sql,
        future=True,
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _prepare_connection)
    return engine
