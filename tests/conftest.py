"""
Test configuration and shared fixtures.
Uses an in-memory SQLite database, rebuilt for every test.
"""
from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taskrelay.core.security import create_access_token
from taskrelay.crud.group import crud_group
from taskrelay.db.base import Base
from taskrelay.db.session import enable_sqlite_savepoints, get_db
from taskrelay.main import app, limiter
from taskrelay.models.group import Group
from taskrelay.models.user import User
from taskrelay.schemas.group import GroupCreate
from taskrelay.schemas.task import TaskCreate
from taskrelay.services.task_service import task_service

# ── Test database ─────────────────────────────────────────────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

UserFactory = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """A private in-memory database with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session that rolls back after each test."""
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        try:
            yield session
            await session.rollback()
        finally:
            await session.close()


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP test client with the test DB injected."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Helpers ───────────────────────────────────────────────────────────────────

def auth_headers(user: User) -> dict[str, str]:
    """Authorization headers carrying a token for ``user``."""
    token = create_access_token(str(user.id), user.role)
    return {"Authorization": f"Bearer {token}"}


def days_from_now(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


# ── User fixtures ─────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def make_user(db: AsyncSession) -> UserFactory:
    """Factory inserting directory users straight into the database."""
    counter = itertools.count(1)

    async def _make(
        role: str = "Employee",
        department: str = "Engineering",
        **kwargs: Any,
    ) -> User:
        n = next(counter)
        user = User(
            email=f"user{n}@example.com",
            username=f"user{n}",
            full_name=kwargs.pop("full_name", f"User {n}"),
            role=role,
            department=department,
            **kwargs,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def ceo(make_user: UserFactory) -> User:
    return await make_user(role="CEO", full_name="Chief Executive")


@pytest_asyncio.fixture
async def manager(make_user: UserFactory) -> User:
    return await make_user(role="Project Manager", full_name="Project Manager")


@pytest_asyncio.fixture
async def lead(make_user: UserFactory) -> User:
    return await make_user(role="Team Lead", full_name="Team Lead")


@pytest_asyncio.fixture
async def employee(make_user: UserFactory) -> User:
    return await make_user(role="Employee", full_name="Eve Employee")


@pytest_asyncio.fixture
async def employee2(make_user: UserFactory) -> User:
    return await make_user(role="Employee", full_name="Frank Employee")


@pytest_asyncio.fixture
async def outsider(make_user: UserFactory) -> User:
    """An employee from a different department."""
    return await make_user(role="Employee", department="Marketing", full_name="Mia Marketing")


# ── Domain fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def make_task(db: AsyncSession) -> Callable[..., Awaitable[Any]]:
    """Factory creating tasks through the lifecycle service."""

    async def _make(creator: User, **fields: Any):
        fields.setdefault("title", "Test Task")
        fields.setdefault("due_date", days_from_now(1))
        return await task_service.create_task(
            db, task_in=TaskCreate(**fields), current_user=creator
        )

    return _make


@pytest.fixture
def make_group(db: AsyncSession) -> Callable[..., Awaitable[Group]]:
    """Factory creating a group led by ``leader`` with the given members."""

    async def _make(leader: User, members: list[User], name: str = "Backend") -> Group:
        group = await crud_group.create_group(
            db,
            obj_in=GroupCreate(name=name, department=leader.department),
            leader_id=leader.id,
            created_by=leader.id,
        )
        for member in members:
            await crud_group.add_member(db, group_id=group.id, user_id=member.id)
        return group

    return _make
