"""
Async engine, session factory and the per-request session dependency.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskrelay.core.config import settings


def is_sqlite(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() == "sqlite"


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool settings for server databases; SQLite runs on its default pool."""
    options: dict[str, Any] = {"echo": settings.DEBUG}
    if not is_sqlite(database_url):
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20, pool_recycle=3600)
    return options


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT nests inside the transaction."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


engine = create_async_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))
if is_sqlite(settings.DATABASE_URL):
    enable_sqlite_savepoints(engine)

# Services flush explicitly before every reload, so autoflush stays off.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One request is one transaction: committed on success, rolled back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
