"""
Per-user dashboard schema.
"""
from __future__ import annotations

from pydantic import BaseModel

from taskrelay.schemas.task import TaskRead
from taskrelay.schemas.user import UserStats


class Dashboard(BaseModel):
    # Every status is present, zero when the user has no live task in it.
    tasks_by_status: dict[str, int]
    overdue_tasks: int
    tasks_due_today: int
    stats: UserStats
    recent_tasks: list[TaskRead]
