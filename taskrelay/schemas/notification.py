"""
Notification Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: uuid.UUID
    recipient_id: uuid.UUID
    sender_id: uuid.UUID | None
    type: str
    task_id: uuid.UUID | None
    comment_id: uuid.UUID | None
    message: str
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int
