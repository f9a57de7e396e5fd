"""
Task ORM model and its owned rows.

Task is the central entity. Assignees, assigned groups, checklist items,
reassignment history and invitations are separate tables owned by the task;
subtasks are tasks whose parent_task_id points at it (adjacency list).
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskrelay.core.constants import (
    DEPARTMENTS,
    INVITATION_PENDING,
    INVITATION_STATUSES,
    TASK_PRIORITIES,
    TASK_STATUSES,
)
from taskrelay.db.base import Base, utcnow

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        Enum(*TASK_STATUSES, name="task_status_enum"),
        nullable=False,
        default="Open",
        server_default="Open",
    )
    priority: Mapped[str] = mapped_column(
        Enum(*TASK_PRIORITIES, name="task_priority_enum"),
        nullable=False,
        default="Medium",
        server_default="Medium",
    )
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#3B82F6")
    department: Mapped[str] = mapped_column(
        Enum(*DEPARTMENTS, name="department_enum"),
        nullable=False,
    )
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Hierarchy ─────────────────────────────────────────────────────────────
    parent_task_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True
    )
    parent_linked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    progress_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Claim workflow ────────────────────────────────────────────────────────
    is_open_for_claims: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_claimed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    claimed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    reassign_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    assignee_links: Mapped[list["TaskAssignee"]] = relationship(
        "TaskAssignee",
        cascade="all, delete-orphan",
        order_by="TaskAssignee.assigned_at",
        lazy="selectin",
    )
    group_links: Mapped[list["TaskGroup"]] = relationship(
        "TaskGroup",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    checklist: Mapped[list["ChecklistItem"]] = relationship(
        "ChecklistItem",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.position",
        lazy="selectin",
    )
    reassign_history: Mapped[list["TaskReassignment"]] = relationship(
        "TaskReassignment",
        cascade="all, delete-orphan",
        order_by="TaskReassignment.reassigned_at",
        lazy="selectin",
    )
    invitations: Mapped[list["TaskInvitation"]] = relationship(
        "TaskInvitation",
        cascade="all, delete-orphan",
        order_by="TaskInvitation.invited_at",
        lazy="selectin",
    )
    # One level only: a subtask's own children are loaded when it is fetched itself.
    subtasks: Mapped[list["Task"]] = relationship(
        "Task",
        order_by="Task.parent_linked_at",
        lazy="selectin",
        join_depth=1,
    )

    __table_args__ = (
        Index("ix_tasks_status_due_date", "status", "due_date"),
        Index("ix_tasks_department", "department"),
        Index("ix_tasks_parent_task_id", "parent_task_id"),
        Index("ix_tasks_created_by", "created_by"),
        Index("ix_tasks_claims", "is_open_for_claims", "is_claimed"),
        Index("ix_tasks_is_archived", "is_archived"),
    )

    # ── Derived views ─────────────────────────────────────────────────────────

    @property
    def assigned_to(self) -> list[uuid.UUID]:
        return [link.user_id for link in self.assignee_links]

    @property
    def assigned_groups(self) -> list[uuid.UUID]:
        return [link.group_id for link in self.group_links]

    @property
    def subtask_ids(self) -> list[uuid.UUID]:
        return [subtask.id for subtask in self.subtasks]

    def is_assigned(self, user_id: uuid.UUID) -> bool:
        return any(link.user_id == user_id for link in self.assignee_links)

    def pending_invitation(self, user_id: uuid.UUID) -> TaskInvitation | None:
        return next(
            (
                inv
                for inv in self.invitations
                if inv.user_id == user_id and inv.status == INVITATION_PENDING
            ),
            None,
        )

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} status={self.status}>"


class TaskAssignee(Base):
    __tablename__ = "task_assignees"

    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (Index("ix_task_assignees_user_id", "user_id"),)


class TaskGroup(Base):
    __tablename__ = "task_groups"

    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )


class ChecklistItem(Base):
    __tablename__ = "checklist_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(String(500), nullable=False)
    is_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (Index("ix_checklist_items_task_id", "task_id"),)

    def __repr__(self) -> str:
        return f"<ChecklistItem id={self.id} done={self.is_completed}>"


class TaskReassignment(Base):
    """One entry of a task's append-only reassignment history."""

    __tablename__ = "task_reassignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    reassigned_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reassigned_to: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reassigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    reason: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    __table_args__ = (Index("ix_task_reassignments_task_id", "task_id"),)


class TaskInvitation(Base):
    """A request for a user to join a task; accepting adds them as an assignee."""

    __tablename__ = "task_invitations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    invited_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        Enum(*INVITATION_STATUSES, name="invitation_status_enum"),
        nullable=False,
        default=INVITATION_PENDING,
        server_default=INVITATION_PENDING,
    )
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_task_invitations_task_id_user_id", "task_id", "user_id"),
        Index("ix_task_invitations_user_id_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<TaskInvitation id={self.id} user_id={self.user_id} status={self.status}>"
