"""
Task activity log routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.schemas.activity import TaskActivityRead
from taskrelay.schemas.pagination import PaginatedResponse
from taskrelay.services.activity_service import activity_service
from taskrelay.services.task_service import task_service

router = APIRouter(prefix="/tasks", tags=["Activity"])


@router.get(
    "/{task_id}/activity",
    response_model=PaginatedResponse[TaskActivityRead],
    summary="Get the activity log of a task, newest first",
)
async def task_activity(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=50, ge=1, le=200),
) -> PaginatedResponse[TaskActivityRead]:
    await task_service.get_task(db, task_id=task_id)
    entries, total = await activity_service.list_for_task(
        db, task_id=task_id, page=page, size=size
    )
    return PaginatedResponse(
        items=[TaskActivityRead.model_validate(e) for e in entries],
        total=total,
        page=page,
        size=size,
    )
