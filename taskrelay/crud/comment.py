"""
Comment CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.base import CRUDBase
from taskrelay.models.comment import Comment
from taskrelay.schemas.comment import CommentCreate, CommentUpdate


class CRUDComment(CRUDBase[Comment, CommentCreate, CommentUpdate]):

    async def create_comment(
        self,
        db: AsyncSession,
        *,
        content: str,
        task_id: uuid.UUID,
        author_id: uuid.UUID,
        parent_comment_id: uuid.UUID | None = None,
    ) -> Comment:
        comment = Comment(
            content=content,
            task_id=task_id,
            author_id=author_id,
            parent_comment_id=parent_comment_id,
        )
        db.add(comment)
        await db.flush()
        await db.refresh(comment)
        return comment

    async def list_by_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[Comment], int]:
        """Top-level comments on a task, newest first."""
        return await self.paginate(
            db,
            Comment.task_id == task_id,
            Comment.parent_comment_id.is_(None),
            order_by=(Comment.created_at.desc(),),
            skip=skip,
            limit=limit,
        )

    async def list_replies(
        self, db: AsyncSession, *, comment_id: uuid.UUID
    ) -> list[Comment]:
        result = await db.execute(
            select(Comment)
            .where(Comment.parent_comment_id == comment_id)
            .order_by(Comment.created_at.asc())
        )
        return list(result.scalars().all())

    async def remove_with_replies(
        self, db: AsyncSession, *, comment: Comment
    ) -> None:
        await db.execute(
            delete(Comment)
            .where(Comment.parent_comment_id == comment.id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(comment)
        await db.flush()


crud_comment = CRUDComment(Comment)
