"""
Notification CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.base import CRUDBase
from taskrelay.db.base import utcnow
from taskrelay.models.notification import Notification
from taskrelay.schemas.notification import NotificationRead


class CRUDNotification(CRUDBase[Notification, NotificationRead, NotificationRead]):

    async def create_notification(
        self,
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        sender_id: uuid.UUID | None,
        type: str,
        message: str,
        task_id: uuid.UUID | None = None,
        comment_id: uuid.UUID | None = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            task_id=task_id,
            comment_id=comment_id,
            message=message,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def list_by_recipient(
        self,
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int]:
        conditions = [Notification.recipient_id == recipient_id]
        if unread_only:
            conditions.append(Notification.is_read.is_(False))
        return await self.paginate(
            db,
            *conditions,
            order_by=(Notification.created_at.desc(),),
            skip=skip,
            limit=limit,
        )

    async def mark_as_read(
        self, db: AsyncSession, *, notification_id: uuid.UUID, recipient_id: uuid.UUID
    ) -> Notification | None:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == recipient_id,
            )
        )
        obj = result.scalar_one_or_none()
        if obj is None:
            return None
        if not obj.is_read:
            obj.is_read = True
            obj.read_at = utcnow()
            db.add(obj)
            await db.flush()
        return obj

    async def mark_all_read(
        self, db: AsyncSession, *, recipient_id: uuid.UUID
    ) -> int:
        """Mark all unread notifications for a user as read. Returns count updated."""
        result = await db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[return-value]

    async def count_unread(self, db: AsyncSession, *, recipient_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()


crud_notification = CRUDNotification(Notification)
