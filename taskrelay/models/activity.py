"""
TaskActivity ORM model.
Immutable, per-task audit trail. Rows are only ever inserted; they disappear
solely when the owning task is hard-deleted.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskrelay.core.constants import ACTIVITY_TYPES
from taskrelay.db.base import Base, utcnow
from taskrelay.models.task import JSONType


class TaskActivity(Base):
    __tablename__ = "task_activities"

    # Monotonic id doubles as the tie-breaker for entries sharing a timestamp.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        Enum(*ACTIVITY_TYPES, name="activity_type_enum"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    meta: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    user: Mapped["User"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "User",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_task_activities_task_id_created_at", "task_id", "created_at"),
        Index("ix_task_activities_type", "type"),
    )

    def __repr__(self) -> str:
        return f"<TaskActivity id={self.id} task_id={self.task_id} type={self.type!r}>"
