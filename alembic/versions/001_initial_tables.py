"""001_initial_tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates all initial tables for TaskRelay:
  - users
  - groups, group_members
  - tasks, task_assignees, task_groups, checklist_items, task_reassignments
  - task_activities
  - comments
  - attachments
  - notifications
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from taskrelay.core.constants import (
    ACTIVITY_TYPES,
    DEPARTMENTS,
    NOTIFICATION_TYPES,
    ROLES,
    TASK_PRIORITIES,
    TASK_STATUSES,
)

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None

ENUMS: dict[str, tuple[str, ...]] = {
    "user_role_enum": ROLES,
    "department_enum": DEPARTMENTS,
    "task_status_enum": TASK_STATUSES,
    "task_priority_enum": TASK_PRIORITIES,
    "activity_type_enum": ACTIVITY_TYPES,
    "notification_type_enum": NOTIFICATION_TYPES,
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _user_fk(name: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable
    )


def _task_fk(name: str = "task_id", nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey("tasks.id", ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    # ── Enums ─────────────────────────────────────────────────────────────────
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    # ── users ─────────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", _enum("user_role_enum"), nullable=False, server_default="Employee"),
        sa.Column("department", _enum("department_enum"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("tasks_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tasks_in_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tasks_overdue", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("last_task_completed_date", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_users_department", "users", ["department"])
    op.create_index("ix_users_role", "users", ["role"])

    # ── groups ────────────────────────────────────────────────────────────────
    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("department", _enum("department_enum"), nullable=False),
        _user_fk("leader_id"),
        _user_fk("created_by"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_groups_department", "groups", ["department"])

    op.create_table(
        "group_members",
        sa.Column(
            "group_id",
            sa.Uuid(),
            sa.ForeignKey("groups.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _timestamp("joined_at"),
    )
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])

    # ── tasks ─────────────────────────────────────────────────────────────────
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", _enum("task_status_enum"), nullable=False, server_default="Open"),
        sa.Column(
            "priority", _enum("task_priority_enum"), nullable=False, server_default="Medium"
        ),
        sa.Column("color", sa.String(20), nullable=False),
        sa.Column("department", _enum("department_enum"), nullable=False),
        sa.Column(
            "tags", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")
        ),
        _user_fk("created_by"),
        _timestamp("start_date"),
        _timestamp("due_date"),
        _timestamp("completed_date", nullable=True),
        _task_fk("parent_task_id", nullable=True),
        _timestamp("parent_linked_at", nullable=True),
        sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_open_for_claims", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_claimed", sa.Boolean(), nullable=False, server_default="false"),
        _user_fk("claimed_by", nullable=True, ondelete="SET NULL"),
        _timestamp("claimed_at", nullable=True),
        sa.Column("reassign_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_tasks_status_due_date", "tasks", ["status", "due_date"])
    op.create_index("ix_tasks_department", "tasks", ["department"])
    op.create_index("ix_tasks_parent_task_id", "tasks", ["parent_task_id"])
    op.create_index("ix_tasks_created_by", "tasks", ["created_by"])
    op.create_index("ix_tasks_claims", "tasks", ["is_open_for_claims", "is_claimed"])
    op.create_index("ix_tasks_is_archived", "tasks", ["is_archived"])

    op.create_table(
        "task_assignees",
        sa.Column(
            "task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column(
            "user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
        ),
        _timestamp("assigned_at"),
    )
    op.create_index("ix_task_assignees_user_id", "task_assignees", ["user_id"])

    op.create_table(
        "task_groups",
        sa.Column(
            "task_id", sa.Uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column(
            "group_id", sa.Uuid(), sa.ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
        ),
    )

    op.create_table(
        "checklist_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _task_fk(),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("text", sa.String(500), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("created_at"),
        _timestamp("completed_at", nullable=True),
        _user_fk("completed_by", nullable=True, ondelete="SET NULL"),
    )
    op.create_index("ix_checklist_items_task_id", "checklist_items", ["task_id"])

    op.create_table(
        "task_reassignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _task_fk(),
        _user_fk("reassigned_by"),
        _user_fk("reassigned_to"),
        _timestamp("reassigned_at"),
        sa.Column("reason", sa.String(500), nullable=False, server_default=""),
    )
    op.create_index("ix_task_reassignments_task_id", "task_reassignments", ["task_id"])

    # ── task_activities ───────────────────────────────────────────────────────
    op.create_table(
        "task_activities",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        _task_fk(),
        sa.Column("type", _enum("activity_type_enum"), nullable=False),
        _user_fk("user_id"),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column(
            "meta", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")
        ),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_task_activities_task_id_created_at", "task_activities", ["task_id", "created_at"]
    )
    op.create_index("ix_task_activities_type", "task_activities", ["type"])

    # ── comments ──────────────────────────────────────────────────────────────
    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _task_fk(),
        _user_fk("author_id"),
        sa.Column("content", sa.String(1000), nullable=False),
        sa.Column(
            "parent_comment_id",
            sa.Uuid(),
            sa.ForeignKey("comments.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("edited_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_comments_task_id_created_at", "comments", ["task_id", "created_at"])
    op.create_index("ix_comments_parent_comment_id", "comments", ["parent_comment_id"])

    # ── attachments ───────────────────────────────────────────────────────────
    op.create_table(
        "attachments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _task_fk(),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("url", sa.String(2000), nullable=False),
        sa.Column("public_id", sa.String(500), nullable=True),
        _user_fk("uploaded_by"),
        _timestamp("uploaded_at"),
    )
    op.create_index("ix_attachments_task_id", "attachments", ["task_id"])

    # ── notifications ─────────────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _user_fk("recipient_id"),
        _user_fk("sender_id", nullable=True, ondelete="SET NULL"),
        sa.Column("type", _enum("notification_type_enum"), nullable=False),
        _task_fk(nullable=True, ondelete="SET NULL"),
        sa.Column(
            "comment_id",
            sa.Uuid(),
            sa.ForeignKey("comments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        _timestamp("read_at", nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_notifications_recipient_is_read", "notifications", ["recipient_id", "is_read"]
    )
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("notifications")
    op.drop_table("attachments")
    op.drop_table("comments")
    op.drop_table("task_activities")
    op.drop_table("task_reassignments")
    op.drop_table("checklist_items")
    op.drop_table("task_groups")
    op.drop_table("task_assignees")
    op.drop_table("tasks")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")

    for enum_name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
