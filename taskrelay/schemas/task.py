"""
Task Pydantic schemas.
Create/update/read variants, the list filter, and request bodies for the
assignment, invitation, subtask and checklist operations.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, computed_field, field_validator

from taskrelay.core.config import settings
from taskrelay.core.constants import Department, TaskPriority, TaskStatus

InitialStatus = Literal["Open", "Pending"]


def _normalize_tags(tags: list[str] | None) -> list[str] | None:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# ── Checklist ─────────────────────────────────────────────────────────────────

class ChecklistItemCreate(BaseModel):
    text: str = Field(min_length=1, max_length=500)

    model_config = {"str_strip_whitespace": True}


class ChecklistItemSeed(ChecklistItemCreate):
    """Checklist entry supplied at task creation; may already be ticked."""

    is_completed: bool = False


class ChecklistItemRead(BaseModel):
    id: uuid.UUID
    text: str
    is_completed: bool
    completed_at: datetime | None
    completed_by: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Create ────────────────────────────────────────────────────────────────────

class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=10000)
    status: InitialStatus = "Open"
    priority: TaskPriority = "Medium"
    color: str | None = Field(default=None, max_length=20)
    department: Department | None = None
    tags: list[str] = Field(default_factory=list, max_length=20)
    start_date: datetime | None = None
    due_date: datetime
    parent_task_id: uuid.UUID | None = None
    assigned_to: list[uuid.UUID] = Field(default_factory=list)
    assigned_groups: list[uuid.UUID] = Field(default_factory=list)
    is_open_for_claims: bool = False
    checklist: list[ChecklistItemSeed] = Field(default_factory=list)

    model_config = {"str_strip_whitespace": True}

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return _normalize_tags(v) or []

    @field_validator("assigned_to", "assigned_groups")
    @classmethod
    def dedupe_ids(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        return list(dict.fromkeys(v))


class SubtaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)

    model_config = {"str_strip_whitespace": True}


# ── Update ────────────────────────────────────────────────────────────────────

class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=10000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    color: str | None = Field(default=None, max_length=20)
    due_date: datetime | None = None
    progress_percentage: int | None = Field(default=None, ge=0, le=100)
    tags: list[str] | None = Field(default=None, max_length=20)

    model_config = {"str_strip_whitespace": True}

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        return _normalize_tags(v)


# ── Assignment ────────────────────────────────────────────────────────────────

class AssignUserRequest(BaseModel):
    user_id: uuid.UUID


class UnassignRequest(BaseModel):
    user_id: uuid.UUID


class ReassignRequest(BaseModel):
    user_id: uuid.UUID
    reason: str = Field(default="", max_length=500)

    model_config = {"str_strip_whitespace": True}


class InviteRequest(BaseModel):
    user_id: uuid.UUID


class InvitationResponseRequest(BaseModel):
    accept: bool


class LinkSubtaskRequest(BaseModel):
    subtask_id: uuid.UUID


# ── Read ──────────────────────────────────────────────────────────────────────

class ReassignmentRead(BaseModel):
    reassigned_by: uuid.UUID
    reassigned_to: uuid.UUID
    reassigned_at: datetime
    reason: str

    model_config = {"from_attributes": True}


class InvitationRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    invited_by: uuid.UUID | None
    status: str
    invited_at: datetime
    responded_at: datetime | None

    model_config = {"from_attributes": True}


class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    status: str
    priority: str
    color: str
    department: str
    tags: list[str]
    created_by: uuid.UUID
    assigned_to: list[uuid.UUID]
    assigned_groups: list[uuid.UUID]
    start_date: datetime
    due_date: datetime
    completed_date: datetime | None
    parent_task_id: uuid.UUID | None
    subtask_ids: list[uuid.UUID]
    progress_percentage: int
    checklist: list[ChecklistItemRead]
    is_open_for_claims: bool
    is_claimed: bool
    claimed_by: uuid.UUID | None
    claimed_at: datetime | None
    reassign_count: int
    reassign_history: list[ReassignmentRead]
    invitations: list[InvitationRead]
    is_archived: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[misc]
    @property
    def reassigns_remaining(self) -> int:
        return max(0, settings.MAX_REASSIGNMENTS - self.reassign_count)


# ── Filter ────────────────────────────────────────────────────────────────────

class TaskFilter(BaseModel):
    """Query parameters for the top-level task listing."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    department: Department | None = None
    assigned_to: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    is_archived: bool = False
    search: str | None = Field(default=None, max_length=200)
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)
