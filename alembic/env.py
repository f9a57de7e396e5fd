"""
Alembic environment for the async TaskRelay schema.
"""
from __future__ import annotations

import asyncio
import logging
import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import async_engine_from_config

import taskrelay.models  # noqa: F401  registers every table on Base.metadata
from taskrelay.core.config import settings
from taskrelay.db.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def get_url() -> str:
    """DATABASE_URL from the environment wins over alembic.ini and the settings default."""
    return os.environ.get(
        "DATABASE_URL",
        config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL,
    )


def skip_empty_revision(migration_context: Any, revision: Any, directives: list[Any]) -> None:
    """Drop an autogenerated revision that would contain no operations."""
    cmd_opts = getattr(config, "cmd_opts", None)
    if cmd_opts is None or not getattr(cmd_opts, "autogenerate", False):
        return
    script = directives[0]
    if script.upgrade_ops.is_empty():
        directives[:] = []
        logger.info("No schema changes detected; revision not written")


def configure_options(url: str) -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        # SQLite cannot ALTER most constraints in place.
        "render_as_batch": make_url(url).get_backend_name() == "sqlite",
        "process_revision_directives": skip_empty_revision,
    }


def run_migrations_offline() -> None:
    url = get_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **configure_options(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, **configure_options(get_url()))

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = get_url()

    connectable = async_engine_from_config(
        configuration,
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
