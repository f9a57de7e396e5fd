"""
Notification dispatcher.
Persists in-app notifications; delivery to devices happens elsewhere.
Dispatch is fire-and-forget: each insert runs in its own savepoint, so a
failure is logged and rolled back without touching the operation that
triggered it.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.notification import crud_notification
from taskrelay.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:

    async def dispatch(
        self,
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        sender_id: uuid.UUID | None,
        type: str,
        message: str,
        task_id: uuid.UUID | None = None,
        comment_id: uuid.UUID | None = None,
    ) -> Notification | None:
        # The caller's pending changes flush outside the savepoint.
        await db.flush()
        try:
            async with db.begin_nested():
                return await crud_notification.create_notification(
                    db,
                    recipient_id=recipient_id,
                    sender_id=sender_id,
                    type=type,
                    message=message,
                    task_id=task_id,
                    comment_id=comment_id,
                )
        except Exception:
            logger.exception(
                "Notification dispatch failed: recipient=%s type=%s task_id=%s",
                recipient_id,
                type,
                task_id,
            )
            return None

    async def dispatch_many(
        self,
        db: AsyncSession,
        *,
        recipient_ids: Iterable[uuid.UUID],
        sender_id: uuid.UUID | None,
        type: str,
        message: str,
        task_id: uuid.UUID | None = None,
        comment_id: uuid.UUID | None = None,
    ) -> int:
        """Notify each distinct recipient except the sender. Returns how many were stored."""
        sent = 0
        for recipient_id in dict.fromkeys(recipient_ids):
            if recipient_id == sender_id:
                continue
            notification = await self.dispatch(
                db,
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=type,
                message=message,
                task_id=task_id,
                comment_id=comment_id,
            )
            if notification is not None:
                sent += 1
        return sent


notification_service = NotificationService()
