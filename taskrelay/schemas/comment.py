"""
Comment Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from taskrelay.schemas.user import UserReadPublic


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
    parent_comment_id: uuid.UUID | None = None

    model_config = {"str_strip_whitespace": True}


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=1000)

    model_config = {"str_strip_whitespace": True}


class CommentRead(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    parent_comment_id: uuid.UUID | None
    is_edited: bool
    edited_at: datetime | None
    created_at: datetime
    author: UserReadPublic | None = None

    model_config = {"from_attributes": True}
