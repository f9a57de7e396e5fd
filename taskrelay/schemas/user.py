"""
User Pydantic schemas.
Directory entries, completion statistics and assignee candidates.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from taskrelay.core.constants import Department, Role


# ── Create ────────────────────────────────────────────────────────────────────

class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=100, pattern=r"^[a-zA-Z0-9_\-]+$")
    full_name: str | None = Field(default=None, max_length=255)
    role: Role = "Employee"
    department: Department


class UserFilter(BaseModel):
    """Query parameters for the user directory listing."""

    department: Department | None = None
    role: Role | None = None
    search: str | None = Field(default=None, max_length=200)
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)


# ── Read ──────────────────────────────────────────────────────────────────────

class UserRead(BaseModel):
    id: uuid.UUID
    email: EmailStr
    username: str
    full_name: str | None
    role: str
    department: str
    is_active: bool
    group_ids: list[uuid.UUID] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class UserReadPublic(BaseModel):
    """Minimal public profile, embedded in task, comment and activity responses."""

    id: uuid.UUID
    username: str
    full_name: str | None
    role: str
    department: str

    model_config = {"from_attributes": True}


class UserStats(BaseModel):
    tasks_completed: int
    tasks_in_progress: int
    tasks_overdue: int
    current_streak: int
    longest_streak: int
    last_task_completed_date: datetime | None

    model_config = {"from_attributes": True}


class AssigneeCandidate(UserReadPublic):
    """A user who may be put on a task, flagged with whether the caller may delegate to them."""

    can_delegate: bool = False
