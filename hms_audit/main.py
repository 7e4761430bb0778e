from __future__ import annotations

import logging
import sys
from pathlib import Path

from hms_audit.bootstrap.startup import initialize_store, setup_logging
from hms_audit.config import LOG_DIR, settings
from hms_audit.container import build_container


def _install_exception_hook() -> None:
    def _handle_exception(exc_type, exc, tb) -> None:
        logging.getLogger(__name__).error("Unhandled exception", exc_info=(exc_type, exc, tb))
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _handle_exception


def main(log_dir: Path = LOG_DIR) -> int:
    """Prepare the store: run catalog migrations, then ensure every collection and index."""
    log_path = setup_logging(log_dir, settings.log_level)
    _install_exception_hook()
    container = build_container()
    if not initialize_store(container=container, database_url=settings.database_url, log_dir=log_dir):
        print(f"Store initialisation failed. Log: {log_path}", file=sys.stderr)
        return 1
    logging.getLogger(__name__).info(
        "Namespace %s ready with %d collections", settings.namespace, len(container.registry.families())
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
