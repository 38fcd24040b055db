"""Alembic environment for Invocation Gateway schema migrations."""

from __future__ import annotations

from alembic import context
from sqlalchemy import engine_from_config, pool

from packages.relaygate_shared.config import load_settings
from resources.substrates.sql import resolve_sql_settings
from services.action.invocation_gateway.data.schema import metadata

config = context.config

target_metadata = metadata
version_table = config.get_main_option(
    "version_table", "alembic_version_invocation_gateway"
)

if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", resolve_sql_settings(load_settings()).url)


def run_migrations_offline() -> None:
    """Run migrations without a live DB connection."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table=version_table,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations using a live DB connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            version_table=version_table,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
