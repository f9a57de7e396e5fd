"""
Attachment CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.base import CRUDBase
from taskrelay.models.attachment import Attachment
from taskrelay.schemas.attachment import AttachmentCreate


class CRUDAttachment(CRUDBase[Attachment, AttachmentCreate, AttachmentCreate]):

    async def create_attachment(
        self,
        db: AsyncSession,
        *,
        obj_in: AttachmentCreate,
        task_id: uuid.UUID,
        uploaded_by: uuid.UUID,
    ) -> Attachment:
        return await self.create(
            db,
            obj_in={**obj_in.model_dump(), "task_id": task_id, "uploaded_by": uploaded_by},
        )

    async def list_by_task(
        self, db: AsyncSession, *, task_id: uuid.UUID
    ) -> list[Attachment]:
        result = await db.execute(
            select(Attachment)
            .where(Attachment.task_id == task_id)
            .order_by(Attachment.uploaded_at.asc())
        )
        return list(result.scalars().all())


crud_attachment = CRUDAttachment(Attachment)
