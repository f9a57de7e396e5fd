"""
Task activity Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from taskrelay.schemas.user import UserReadPublic


class TaskActivityRead(BaseModel):
    id: int
    task_id: uuid.UUID
    type: str
    user_id: uuid.UUID
    description: str
    meta: dict[str, Any]
    created_at: datetime
    user: UserReadPublic | None = None

    model_config = {"from_attributes": True}
