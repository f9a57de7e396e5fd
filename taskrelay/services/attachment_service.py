"""
Attachment metadata.
Files live in the external media store; this only records and forgets them
and keeps the task's activity log in step.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.exceptions import NotFoundException
from taskrelay.crud.attachment import crud_attachment
from taskrelay.crud.task import crud_task
from taskrelay.models.attachment import Attachment
from taskrelay.models.task import Task
from taskrelay.models.user import User
from taskrelay.schemas.attachment import AttachmentCreate
from taskrelay.services.activity_service import activity_service
from taskrelay.services.permissions import assert_can_manage, assert_can_modify


class AttachmentService:

    async def add_attachment(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        attachment_in: AttachmentCreate,
        current_user: User,
    ) -> Attachment:
        task = await self._get_task(db, task_id)
        assert_can_modify(task, current_user)

        attachment = await crud_attachment.create_attachment(
            db, obj_in=attachment_in, task_id=task.id, uploaded_by=current_user.id
        )
        await activity_service.append(
            db,
            task_id=task.id,
            type="attachment_added",
            user_id=current_user.id,
            description=f'Attached file: "{attachment.file_name}"',
            meta={"attachment_id": str(attachment.id), "file_name": attachment.file_name},
        )
        return attachment

    async def list_attachments(
        self, db: AsyncSession, *, task_id: uuid.UUID
    ) -> list[Attachment]:
        task = await self._get_task(db, task_id)
        return await crud_attachment.list_by_task(db, task_id=task.id)

    async def delete_attachment(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        attachment_id: uuid.UUID,
        current_user: User,
    ) -> None:
        task = await self._get_task(db, task_id)
        attachment = await crud_attachment.get(db, attachment_id)
        if attachment is None or attachment.task_id != task.id:
            raise NotFoundException("Attachment", str(attachment_id))
        if attachment.uploaded_by != current_user.id:
            assert_can_manage(task, current_user)

        file_name = attachment.file_name
        await crud_attachment.remove(db, db_obj=attachment)
        await activity_service.append(
            db,
            task_id=task.id,
            type="attachment_deleted",
            user_id=current_user.id,
            description=f'Deleted attachment: "{file_name}"',
            meta={"attachment_id": str(attachment_id), "file_name": file_name},
        )

    @staticmethod
    async def _get_task(db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task


attachment_service = AttachmentService()
