"""
Attachment Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class AttachmentCreate(BaseModel):
    """Metadata for a file the media service has already stored."""

    file_name: str = Field(min_length=1, max_length=500)
    url: str = Field(min_length=1, max_length=2000)
    public_id: str | None = Field(default=None, max_length=500)

    model_config = {"str_strip_whitespace": True}


class AttachmentRead(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    file_name: str
    url: str
    public_id: str | None
    uploaded_by: uuid.UUID
    uploaded_at: datetime

    model_config = {"from_attributes": True}
