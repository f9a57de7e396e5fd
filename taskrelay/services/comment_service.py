"""
Task comments.
Posting appends a comment_added entry and notifies the task's creator and
assignees, never the author.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.exceptions import NotFoundException, PermissionDeniedException
from taskrelay.crud.comment import crud_comment
from taskrelay.crud.task import crud_task
from taskrelay.db.base import utcnow
from taskrelay.models.comment import Comment
from taskrelay.models.user import User
from taskrelay.schemas.comment import CommentCreate, CommentUpdate
from taskrelay.schemas.pagination import page_offset
from taskrelay.services.activity_service import activity_service
from taskrelay.services.notification_service import notification_service
from taskrelay.services.permissions import SUPERUSER_ROLE


class CommentService:

    async def create_comment(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        comment_in: CommentCreate,
        current_user: User,
    ) -> Comment:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))

        if comment_in.parent_comment_id is not None:
            parent = await crud_comment.get(db, comment_in.parent_comment_id)
            if parent is None or parent.task_id != task_id:
                raise NotFoundException("Comment", str(comment_in.parent_comment_id))

        comment = await crud_comment.create_comment(
            db,
            content=comment_in.content,
            task_id=task_id,
            author_id=current_user.id,
            parent_comment_id=comment_in.parent_comment_id,
        )

        await activity_service.append(
            db,
            task_id=task_id,
            type="comment_added",
            user_id=current_user.id,
            description="Added a comment",
            meta={"comment_id": str(comment.id)},
        )

        await notification_service.dispatch_many(
            db,
            recipient_ids=[task.created_by, *task.assigned_to],
            sender_id=current_user.id,
            type="task_comment",
            task_id=task_id,
            comment_id=comment.id,
            message=f"commented on task: {task.title}",
        )
        return comment

    async def list_comments(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        page: int = 1,
        size: int = 50,
    ) -> tuple[list[Comment], int]:
        if not await crud_task.exists(db, id=task_id):
            raise NotFoundException("Task", str(task_id))
        return await crud_comment.list_by_task(
            db, task_id=task_id, skip=page_offset(page, size), limit=size
        )

    async def list_replies(
        self, db: AsyncSession, *, comment_id: uuid.UUID
    ) -> list[Comment]:
        if not await crud_comment.exists(db, id=comment_id):
            raise NotFoundException("Comment", str(comment_id))
        return await crud_comment.list_replies(db, comment_id=comment_id)

    async def update_comment(
        self,
        db: AsyncSession,
        *,
        comment_id: uuid.UUID,
        comment_in: CommentUpdate,
        current_user: User,
    ) -> Comment:
        comment = await crud_comment.get(db, comment_id)
        if comment is None:
            raise NotFoundException("Comment", str(comment_id))
        if comment.author_id != current_user.id:
            raise PermissionDeniedException("Only the comment author can edit this comment")

        return await crud_comment.update(
            db,
            db_obj=comment,
            obj_in={"content": comment_in.content, "is_edited": True, "edited_at": utcnow()},
        )

    async def delete_comment(
        self,
        db: AsyncSession,
        *,
        comment_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Delete a comment together with its replies."""
        comment = await crud_comment.get(db, comment_id)
        if comment is None:
            raise NotFoundException("Comment", str(comment_id))
        if comment.author_id != current_user.id and current_user.role != SUPERUSER_ROLE:
            raise PermissionDeniedException("Only the comment author can delete this comment")

        await crud_comment.remove_with_replies(db, comment=comment)


comment_service = CommentService()
