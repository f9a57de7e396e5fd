"""
Attachment metadata routes nested under tasks.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.schemas.attachment import AttachmentCreate, AttachmentRead
from taskrelay.services.attachment_service import attachment_service

router = APIRouter(prefix="/tasks", tags=["Attachments"])


@router.get(
    "/{task_id}/attachments",
    response_model=list[AttachmentRead],
    summary="List attachments on a task",
)
async def list_attachments(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> list[AttachmentRead]:
    attachments = await attachment_service.list_attachments(db, task_id=task_id)
    return [AttachmentRead.model_validate(a) for a in attachments]


@router.post(
    "/{task_id}/attachments",
    response_model=AttachmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record an uploaded file on a task",
)
async def add_attachment(
    task_id: uuid.UUID,
    attachment_in: AttachmentCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> AttachmentRead:
    attachment = await attachment_service.add_attachment(
        db, task_id=task_id, attachment_in=attachment_in, current_user=current_user
    )
    return AttachmentRead.model_validate(attachment)


@router.delete(
    "/{task_id}/attachments/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an attachment",
)
async def delete_attachment(
    task_id: uuid.UUID,
    attachment_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await attachment_service.delete_attachment(
        db, task_id=task_id, attachment_id=attachment_id, current_user=current_user
    )
