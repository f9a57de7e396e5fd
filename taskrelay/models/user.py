"""
User ORM model.
The user directory as TaskRelay sees it: role, department, group
memberships and per-user completion statistics.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskrelay.core.constants import DEPARTMENTS, ROLES
from taskrelay.db.base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        Enum(*ROLES, name="user_role_enum"),
        nullable=False,
        default="Employee",
        server_default="Employee",
    )
    department: Mapped[str] = mapped_column(
        Enum(*DEPARTMENTS, name="department_enum"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    # ── Completion statistics ─────────────────────────────────────────────────
    tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_in_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tasks_overdue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_task_completed_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    group_memberships: Mapped[list["GroupMember"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "GroupMember",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_users_department", "department"),
        Index("ix_users_role", "role"),
    )

    @property
    def group_ids(self) -> list[uuid.UUID]:
        return [m.group_id for m in self.group_memberships]

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role!r} department={self.department!r}>"
