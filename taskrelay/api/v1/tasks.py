"""
Task routes.
Create, read, filter, update, archive and delete, plus the claim feed.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from taskrelay.core.constants import Department, TaskPriority, TaskStatus
from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.schemas.pagination import PaginatedResponse
from taskrelay.schemas.task import TaskCreate, TaskFilter, TaskRead, TaskUpdate
from taskrelay.services.task_service import task_service

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _task_filter_params(
    status: TaskStatus | None = Query(default=None),
    priority: TaskPriority | None = Query(default=None),
    department: Department | None = Query(default=None),
    assigned_to: uuid.UUID | None = Query(default=None),
    created_by: uuid.UUID | None = Query(default=None),
    is_archived: bool = Query(default=False),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> TaskFilter:
    return TaskFilter(
        status=status,
        priority=priority,
        department=department,
        assigned_to=assigned_to,
        created_by=created_by,
        is_archived=is_archived,
        search=search,
        page=page,
        size=size,
    )


@router.get(
    "/",
    response_model=PaginatedResponse[TaskRead],
    summary="List top-level tasks with filters and pagination",
)
async def list_tasks(
    current_user: CurrentUser,
    db: DBSession,
    filters: Annotated[TaskFilter, Depends(_task_filter_params)],
) -> PaginatedResponse[TaskRead]:
    tasks, total = await task_service.list_tasks(db, filters=filters)
    return PaginatedResponse(
        items=[TaskRead.model_validate(t) for t in tasks],
        total=total,
        page=filters.page,
        size=filters.size,
    )


@router.post(
    "/",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    task_in: TaskCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.create_task(db, task_in=task_in, current_user=current_user)
    return TaskRead.model_validate(task)


@router.get(
    "/feed",
    response_model=PaginatedResponse[TaskRead],
    summary="Open, unclaimed tasks in my department",
)
async def claim_feed(
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[TaskRead]:
    tasks, total = await task_service.list_feed(
        db, current_user=current_user, page=page, size=size
    )
    return PaginatedResponse(
        items=[TaskRead.model_validate(t) for t in tasks],
        total=total,
        page=page,
        size=size,
    )


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    summary="Get a task by ID",
)
async def get_task(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.get_task(db, task_id=task_id)
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}",
    response_model=TaskRead,
    summary="Update a task",
)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.apply_update(
        db, task_id=task_id, task_in=task_in, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}/archive",
    response_model=TaskRead,
    summary="Archive (soft-delete) a task",
)
async def archive_task(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_service.archive_task(db, task_id=task_id, current_user=current_user)
    return TaskRead.model_validate(task)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a task and all of its subtasks",
)
async def delete_task(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await task_service.delete_task(db, task_id=task_id, current_user=current_user)
