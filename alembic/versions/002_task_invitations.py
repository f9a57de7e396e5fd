"""002_task_invitations

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:00.000000

Adds task invitations:
  - invitation_status_enum and the task_invitations table
  - the invitation activity and notification types
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | None = None
depends_on: str | None = None

INVITATION_STATUSES = ("Pending", "Accepted", "Declined")

NEW_ENUM_VALUES: dict[str, tuple[str, ...]] = {
    "activity_type_enum": ("invited", "invitation_accepted", "invitation_declined"),
    "notification_type_enum": ("task_invitation",),
}


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        # ALTER TYPE ... ADD VALUE may not share a transaction with its first use.
        with op.get_context().autocommit_block():
            for enum_name, values in NEW_ENUM_VALUES.items():
                for value in values:
                    op.execute(f"ALTER TYPE {enum_name} ADD VALUE IF NOT EXISTS '{value}'")

    postgresql.ENUM(*INVITATION_STATUSES, name="invitation_status_enum").create(
        bind, checkfirst=True
    )

    op.create_table(
        "task_invitations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "invited_by",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "status",
            postgresql.ENUM(
                *INVITATION_STATUSES, name="invitation_status_enum", create_type=False
            ),
            nullable=False,
            server_default="Pending",
        ),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_task_invitations_task_id_user_id", "task_invitations", ["task_id", "user_id"]
    )
    op.create_index(
        "ix_task_invitations_user_id_status", "task_invitations", ["user_id", "status"]
    )


def downgrade() -> None:
    # PostgreSQL cannot drop enum values; the added activity and notification
    # types stay in place.
    op.drop_table("task_invitations")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS invitation_status_enum")
