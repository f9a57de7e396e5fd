"""
Subtask hierarchy and checklist routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.schemas.task import (
    ChecklistItemCreate,
    LinkSubtaskRequest,
    SubtaskCreate,
    TaskRead,
)
from taskrelay.services.task_tree_service import task_tree_service

router = APIRouter(prefix="/tasks", tags=["Subtasks"])


# ── Subtasks ──────────────────────────────────────────────────────────────────

@router.get(
    "/{task_id}/subtasks",
    response_model=list[TaskRead],
    summary="List direct subtasks",
)
async def list_subtasks(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[TaskRead]:
    subtasks = await task_tree_service.list_subtasks(db, parent_id=task_id)
    return [TaskRead.model_validate(t) for t in subtasks]


@router.post(
    "/{task_id}/subtasks",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subtask",
)
async def create_subtask(
    task_id: uuid.UUID,
    subtask_in: SubtaskCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    subtask = await task_tree_service.create_subtask(
        db, parent_id=task_id, subtask_in=subtask_in, current_user=current_user
    )
    return TaskRead.model_validate(subtask)


@router.post(
    "/{task_id}/subtasks/link",
    response_model=TaskRead,
    summary="Link an existing task as a subtask",
)
async def link_subtask(
    task_id: uuid.UUID,
    body: LinkSubtaskRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    subtask = await task_tree_service.link_existing(
        db, parent_id=task_id, subtask_id=body.subtask_id, current_user=current_user
    )
    return TaskRead.model_validate(subtask)


@router.delete(
    "/{task_id}/subtasks/{subtask_id}",
    response_model=TaskRead,
    summary="Unlink a subtask; it becomes a top-level task",
)
async def unlink_subtask(
    task_id: uuid.UUID,
    subtask_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    subtask = await task_tree_service.unlink(
        db, parent_id=task_id, subtask_id=subtask_id, current_user=current_user
    )
    return TaskRead.model_validate(subtask)


@router.get(
    "/{task_id}/available-subtasks",
    response_model=list[TaskRead],
    summary="Tasks that could be linked under this one",
)
async def available_subtasks(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[TaskRead]:
    tasks = await task_tree_service.available_subtasks(db, parent_id=task_id)
    return [TaskRead.model_validate(t) for t in tasks]


# ── Checklist ─────────────────────────────────────────────────────────────────

@router.post(
    "/{task_id}/checklist",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a checklist item",
)
async def add_checklist_item(
    task_id: uuid.UUID,
    item_in: ChecklistItemCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_tree_service.add_checklist_item(
        db, task_id=task_id, item_in=item_in, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}/checklist/{item_id}/toggle",
    response_model=TaskRead,
    summary="Toggle a checklist item",
)
async def toggle_checklist_item(
    task_id: uuid.UUID,
    item_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_tree_service.toggle_checklist_item(
        db, task_id=task_id, item_id=item_id, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.delete(
    "/{task_id}/checklist/{item_id}",
    response_model=TaskRead,
    summary="Delete a checklist item",
)
async def delete_checklist_item(
    task_id: uuid.UUID,
    item_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await task_tree_service.delete_checklist_item(
        db, task_id=task_id, item_id=item_id, current_user=current_user
    )
    return TaskRead.model_validate(task)
