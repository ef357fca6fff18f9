"""Alembic environment for the Studioflow PostgreSQL schema.

The database URL comes from StudioflowConfig, so the TOML file and the
STUDIOFLOW_DATABASE__URL override used by the server also drive
migrations. Pass ``-x config=path/to/studioflow.toml`` to use the same file
as ``studioflow --config``.

The migrations create PostgreSQL enum and JSONB types. SQLite databases
(tests, local trials) are created with ``studioflow init-db`` instead, and
running migrations against one is refused.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

from studioflow.config import load_config
from studioflow.database.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def studioflow_database_url() -> str:
    """Resolve the migration target from the Studioflow config.

    Raises:
        RuntimeError: If the configured database is not PostgreSQL.
    """
    config_arg = context.get_x_argument(as_dictionary=True).get("config")
    studioflow_config = load_config(Path(config_arg) if config_arg else None)
    url = studioflow_config.database.url
    backend = make_url(url).get_backend_name()
    if backend != "postgresql":
        raise RuntimeError(
            f"Migrations target PostgreSQL, not {backend}; "
            "create other databases with `studioflow init-db`"
        )
    return url


config.set_main_option("sqlalchemy.url", studioflow_database_url())
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Apply pending migrations over an asyncpg connection."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
