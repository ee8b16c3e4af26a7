"""
alembic.env

Alembic migration environment configuration.

Responsibilities:
- Provide metadata discovery for autogeneration.
- Configure offline/online migration execution against the async engine URL.

Notes:
- This module is executed by Alembic, not imported by the FastAPI runtime.
"""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from e3d_commerce.db import models  # noqa: F401  # ensure models are registered on Base.metadata
from e3d_commerce.db.base import Base
from e3d_commerce.settings import Settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _get_database_url() -> str:
    # Prefer explicit env var for migrations
    if "E3D_DATABASE_URL" in os.environ:
        return os.environ["E3D_DATABASE_URL"]
    return Settings().database_url


def _configure(**kwargs) -> None:
    url = _get_database_url()
    context.configure(
        target_metadata=target_metadata,
        # SQLite cannot ALTER most constraints in place; batch mode recreates the table.
        render_as_batch=url.startswith("sqlite"),
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    # Offline: emit SQL scripts without a DB connection.
    _configure(
        url=_get_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = async_engine_from_config(
        configuration, prefix="sqlalchemy.", poolclass=pool.NullPool
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_run_sync_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
