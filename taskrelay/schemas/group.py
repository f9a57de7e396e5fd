"""
Group and GroupMember Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from taskrelay.core.constants import Department
from taskrelay.schemas.user import UserReadPublic


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=500)
    department: Department
    leader_id: uuid.UUID | None = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)

    model_config = {"str_strip_whitespace": True}


class GroupMemberAdd(BaseModel):
    user_id: uuid.UUID


class GroupMemberRead(BaseModel):
    group_id: uuid.UUID
    user_id: uuid.UUID
    joined_at: datetime
    user: UserReadPublic | None = None

    model_config = {"from_attributes": True}


class GroupRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    department: str
    leader_id: uuid.UUID
    created_by: uuid.UUID
    is_active: bool
    member_ids: list[uuid.UUID] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class GroupReadWithMembers(GroupRead):
    members: list[GroupMemberRead] = []
