from __future__ import annotations

from logging.config import fileConfig
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import engine_from_config, pool

if TYPE_CHECKING:
    from sqlalchemy import MetaData


def _load_target_metadata() -> tuple[MetaData, str]:
    from jam3a.core.settings import get_settings
    from jam3a.db.base import Base, import_orm_models

    import_orm_models()
    return Base.metadata, get_settings().database_url


config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata, settings_database_url = _load_target_metadata()


def _resolve_database_url() -> str:
    """Prefer `alembic -x database_url=...` over application settings."""

    override = context.get_x_argument(as_dictionary=True).get("database_url")
    return override or settings_database_url


database_url = _resolve_database_url()
config.set_main_option("sqlalchemy.url", database_url)
render_as_batch = database_url.startswith("sqlite")


def run_migrations_offline() -> None:
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=render_as_batch,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=render_as_batch,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
