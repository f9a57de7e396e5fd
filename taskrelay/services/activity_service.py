"""
Per-task activity log.
Writes immutable audit entries; every mutating service records its change here
before the change is considered complete.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.activity import crud_activity
from taskrelay.models.activity import TaskActivity
from taskrelay.schemas.pagination import page_offset

logger = logging.getLogger(__name__)


class ActivityService:

    async def append(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        type: str,
        user_id: uuid.UUID,
        description: str,
        meta: dict[str, Any] | None = None,
    ) -> TaskActivity:
        """
        Append one entry to a task's log.
        Failures are logged and re-raised so the surrounding mutation rolls back.
        """
        try:
            return await crud_activity.create_entry(
                db,
                task_id=task_id,
                type=type,
                user_id=user_id,
                description=description,
                meta=meta,
            )
        except Exception as exc:
            logger.error(
                "Failed to write task activity: task_id=%s type=%s user_id=%s: %s",
                task_id,
                type,
                user_id,
                exc,
            )
            raise

    async def list_for_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        page: int = 1,
        size: int = 50,
    ) -> tuple[list[TaskActivity], int]:
        return await crud_activity.list_by_task(
            db, task_id=task_id, skip=page_offset(page, size), limit=size
        )


activity_service = ActivityService()
