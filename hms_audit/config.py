import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "hms-audit"
APP_AUTHOR = "hms"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_log_level(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    if raw in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
        return raw
    return default


def _resolve_data_dir() -> Path:
    env_dir = os.getenv("HMS_AUDIT_DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


NAMESPACE = (os.getenv("HMS_AUDIT_NAMESPACE") or "audit").strip() or "audit"
DATA_DIR = _resolve_data_dir()
LOG_DIR = DATA_DIR / "logs"
DB_FILE = DATA_DIR / f"{NAMESPACE}.db"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOG_DIR.mkdir(parents=True, exist_ok=True)


def default_database_url() -> str:
    # SQLite URL uses forward slashes; as_posix() keeps it cross-platform.
    return f"sqlite:///{DB_FILE.as_posix()}"


@dataclass(frozen=True)
class Settings:
    namespace: str = NAMESPACE
    database_url: str = os.getenv("DATABASE_URL", default_database_url())
    echo_sql: bool = os.getenv("SQL_ECHO", "0") == "1"
    strict_queries: bool = _env_bool("HMS_AUDIT_STRICT_QUERIES", False)
    log_level: str = _env_log_level("HMS_AUDIT_LOG_LEVEL", "INFO")


settings = Settings()
