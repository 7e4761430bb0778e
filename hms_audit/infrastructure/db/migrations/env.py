from __future__ import annotations

import logging

from alembic import context
from sqlalchemy import engine_from_config, pool

from hms_audit.config import settings
from hms_audit.infrastructure.db.models_sqlalchemy import Base

config = context.config
logger = logging.getLogger("alembic.env")

if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name:
    from logging.config import fileConfig

    try:
        fileConfig(config.config_file_name)
    except KeyError:
        logger.warning("No logging sections in %s; keeping current handlers", config.config_file_name)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:  # noqa: ANN001
    # Collection tables and their expression indexes are owned by CollectionDdlManager.
    table_name = name if type_ == "table" else getattr(getattr(obj, "table", None), "name", None)
    return table_name is None or table_name in target_metadata.tables


def _configure(**kwargs) -> None:  # noqa: ANN003
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        render_as_batch=True,
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        logger.info("Migrating %s", connection.engine.url.render_as_string(hide_password=True))
        _configure(connection=connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
