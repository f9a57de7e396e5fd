"""
Task activity CRUD operations.
Insert and read only; entries are never updated.
"""
from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.base import CRUDBase
from taskrelay.models.activity import TaskActivity


class CRUDTaskActivity(CRUDBase[TaskActivity, BaseModel, BaseModel]):

    async def create_entry(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        type: str,
        user_id: uuid.UUID,
        description: str,
        meta: dict[str, Any] | None = None,
    ) -> TaskActivity:
        entry = TaskActivity(
            task_id=task_id,
            type=type,
            user_id=user_id,
            description=description,
            meta=meta or {},
        )
        db.add(entry)
        await db.flush()
        return entry

    async def list_by_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[TaskActivity], int]:
        """Entries for one task, newest first; equal timestamps fall back to insertion order."""
        return await self.paginate(
            db,
            TaskActivity.task_id == task_id,
            order_by=(TaskActivity.created_at.desc(), TaskActivity.id.desc()),
            skip=skip,
            limit=limit,
        )


crud_activity = CRUDTaskActivity(TaskActivity)
