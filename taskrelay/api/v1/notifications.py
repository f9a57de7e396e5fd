"""
Notification routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.core.exceptions import NotFoundException
from taskrelay.crud.notification import crud_notification
from taskrelay.schemas.notification import NotificationRead, UnreadCount
from taskrelay.schemas.pagination import PaginatedResponse, page_offset

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=PaginatedResponse[NotificationRead],
    summary="List my notifications",
)
async def list_notifications(
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
) -> PaginatedResponse[NotificationRead]:
    notifications, total = await crud_notification.list_by_recipient(
        db,
        recipient_id=current_user.id,
        skip=page_offset(page, size),
        limit=size,
        unread_only=unread_only,
    )
    return PaginatedResponse(
        items=[NotificationRead.model_validate(n) for n in notifications],
        total=total,
        page=page,
        size=size,
    )


@router.get(
    "/unread-count",
    response_model=UnreadCount,
    summary="Count my unread notifications",
)
async def unread_count(
    current_user: CurrentUser,
    db: DBSession,
) -> UnreadCount:
    count = await crud_notification.count_unread(db, recipient_id=current_user.id)
    return UnreadCount(count=count)


@router.put(
    "/read-all",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await crud_notification.mark_all_read(db, recipient_id=current_user.id)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark a notification as read",
)
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> NotificationRead:
    notification = await crud_notification.mark_as_read(
        db, notification_id=notification_id, recipient_id=current_user.id
    )
    if notification is None:
        raise NotFoundException("Notification", str(notification_id))
    return NotificationRead.model_validate(notification)
