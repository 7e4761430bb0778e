from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from alembic import command
from alembic.config import Config

from hms_audit.container import Container
from hms_audit.domain.errors import AppError

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "infrastructure" / "db" / "migrations"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(log_dir: Path, level: str = "INFO") -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "hms_audit.log"
    handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    return log_path


def _log_migration_failure(database_url: str, log_dir: Path) -> None:
    """Record the active exception in the main log and in migration_error.log."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_dir / "migration_error.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    try:
        logger.exception("Migrations from %s failed for %s", MIGRATIONS_DIR, database_url)
    finally:
        logger.removeHandler(handler)
        handler.close()


def run_migrations(database_url: str, log_dir: Path) -> bool:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", database_url)
    try:
        command.upgrade(cfg, "head")
    except Exception:  # noqa: BLE001
        _log_migration_failure(database_url, log_dir)
        return False
    return True


def ensure_collections(container: Container) -> bool:
    try:
        container.collection_manager.ensure_all()
        return True
    except AppError:
        logger.exception("Failed to ensure collections")
        return False


def initialize_store(*, container: Container, database_url: str, log_dir: Path) -> bool:
    if not run_migrations(database_url, log_dir):
        return False
    return ensure_collections(container)
