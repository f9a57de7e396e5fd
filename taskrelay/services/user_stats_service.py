"""
Per-user completion statistics and the dashboard built on them.
Counts are recomputed for every assignee whenever a task enters Completed,
and again whenever a dashboard is read.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.constants import (
    CLOSED_STATUSES,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    TASK_STATUSES,
)
from taskrelay.core.exceptions import NotFoundException, PermissionDeniedException
from taskrelay.crud.task import crud_task
from taskrelay.crud.user import crud_user
from taskrelay.db.base import as_utc, utcnow
from taskrelay.models.user import User
from taskrelay.schemas.dashboard import Dashboard
from taskrelay.schemas.task import TaskRead
from taskrelay.schemas.user import UserStats
from taskrelay.services.permissions import SUPERUSER_ROLE

logger = logging.getLogger(__name__)

RECENT_TASKS_LIMIT = 5


def next_streak(current: int, last_completed: date | None, today: date) -> int:
    """Same day keeps the streak, the day after extends it, any gap restarts at 1."""
    if last_completed is None:
        return 1
    if last_completed == today:
        return current
    if last_completed == today - timedelta(days=1):
        return current + 1
    return 1


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


class UserStatsService:

    async def record_completion(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        now: datetime | None = None,
    ) -> User | None:
        user = await crud_user.get(db, user_id)
        if user is None:
            logger.warning("Skipping stats update for unknown user %s", user_id)
            return None

        now = now or utcnow()
        last = as_utc(user.last_task_completed_date)
        streak = next_streak(
            user.current_streak,
            last.date() if last is not None else None,
            now.date(),
        )

        await self._refresh_counts(db, user, now)
        user.current_streak = streak
        user.longest_streak = max(user.longest_streak, streak)
        user.last_task_completed_date = now
        db.add(user)
        await db.flush()
        return user

    async def dashboard(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        current_user: User,
        now: datetime | None = None,
    ) -> Dashboard:
        """Workload summary for ``user_id``; only the user and the CEO may read it."""
        if user_id != current_user.id and current_user.role != SUPERUSER_ROLE:
            raise PermissionDeniedException("You can only view your own dashboard")
        user = await crud_user.get(db, user_id)
        if user is None:
            raise NotFoundException("User", str(user_id))

        now = now or utcnow()
        await self._refresh_counts(db, user, now)
        db.add(user)
        await db.flush()

        by_status = await crud_task.count_assigned_by_status(db, user_id=user_id)
        overdue = await crud_task.count_assigned(
            db,
            user_id=user_id,
            exclude_statuses=CLOSED_STATUSES,
            due_before=now,
            exclude_archived=True,
        )
        day_start, day_end = day_bounds(now)
        due_today = await crud_task.count_assigned(
            db,
            user_id=user_id,
            exclude_statuses=CLOSED_STATUSES,
            due_from=day_start,
            due_before=day_end,
            exclude_archived=True,
        )
        recent = await crud_task.list_recent_for_user(
            db, user_id=user_id, limit=RECENT_TASKS_LIMIT
        )
        return Dashboard(
            tasks_by_status={status: by_status.get(status, 0) for status in TASK_STATUSES},
            overdue_tasks=overdue,
            tasks_due_today=due_today,
            stats=UserStats.model_validate(user),
            recent_tasks=[TaskRead.model_validate(task) for task in recent],
        )

    @staticmethod
    async def _refresh_counts(db: AsyncSession, user: User, now: datetime) -> None:
        user.tasks_completed = await crud_task.count_assigned(
            db, user_id=user.id, statuses=[STATUS_COMPLETED]
        )
        user.tasks_in_progress = await crud_task.count_assigned(
            db, user_id=user.id, statuses=[STATUS_IN_PROGRESS]
        )
        user.tasks_overdue = await crud_task.count_assigned(
            db, user_id=user.id, exclude_statuses=CLOSED_STATUSES, due_before=now
        )


user_stats_service = UserStatsService()
