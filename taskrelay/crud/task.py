"""
Task CRUD operations.
Extends CRUDBase with locked reads, filtered listings, tree queries and the
subtree cascade used by hard delete.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.constants import CLOSED_STATUSES
from taskrelay.crud.base import CRUDBase
from taskrelay.models.activity import TaskActivity
from taskrelay.models.attachment import Attachment
from taskrelay.models.comment import Comment
from taskrelay.models.notification import Notification
from taskrelay.models.task import (
    ChecklistItem,
    Task,
    TaskAssignee,
    TaskGroup,
    TaskInvitation,
    TaskReassignment,
)
from taskrelay.schemas.pagination import page_offset
from taskrelay.schemas.task import TaskCreate, TaskFilter, TaskUpdate


class CRUDTask(CRUDBase[Task, TaskCreate, TaskUpdate]):

    async def get(
        self,
        db: AsyncSession,
        id: uuid.UUID,
        *,
        for_update: bool = False,
        refresh: bool = True,
    ) -> Task | None:
        """
        Fetch a task and its owned rows, re-read from the database by default
        so relationship collections never go stale between service steps.
        """
        return await super().get(db, id, for_update=for_update, refresh=refresh)

    async def get_parent_id(
        self, db: AsyncSession, task_id: uuid.UUID
    ) -> uuid.UUID | None:
        result = await db.execute(select(Task.parent_task_id).where(Task.id == task_id))
        return result.scalar_one_or_none()

    async def list_with_filters(
        self,
        db: AsyncSession,
        *,
        filters: TaskFilter,
    ) -> tuple[list[Task], int]:
        """
        Return (tasks, total) for top-level tasks matching every filter.
        Subtasks are reached through their parent and never listed here.
        """
        conditions = [
            Task.parent_task_id.is_(None),
            Task.is_archived == filters.is_archived,
        ]
        if filters.status is not None:
            conditions.append(Task.status == filters.status)
        if filters.priority is not None:
            conditions.append(Task.priority == filters.priority)
        if filters.department is not None:
            conditions.append(Task.department == filters.department)
        if filters.assigned_to is not None:
            conditions.append(
                Task.id.in_(
                    select(TaskAssignee.task_id).where(TaskAssignee.user_id == filters.assigned_to)
                )
            )
        if filters.created_by is not None:
            conditions.append(Task.created_by == filters.created_by)
        if filters.search:
            search_term = f"%{filters.search}%"
            conditions.append(
                or_(Task.title.ilike(search_term), Task.description.ilike(search_term))
            )

        return await self.paginate(
            db,
            *conditions,
            order_by=(Task.due_date.asc(), Task.created_at.desc()),
            skip=page_offset(filters.page, filters.size),
            limit=filters.size,
            refresh=True,
        )

    async def list_claimable(
        self,
        db: AsyncSession,
        *,
        department: str,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Task], int]:
        """Open-for-claims, unclaimed, live tasks of one department, newest first."""
        return await self.paginate(
            db,
            Task.is_open_for_claims.is_(True),
            Task.is_claimed.is_(False),
            Task.department == department,
            Task.is_archived.is_(False),
            Task.status.not_in(CLOSED_STATUSES),
            order_by=(Task.created_at.desc(),),
            skip=skip,
            limit=limit,
            refresh=True,
        )

    async def list_children(
        self, db: AsyncSession, *, parent_id: uuid.UUID
    ) -> list[Task]:
        result = await db.execute(
            select(Task)
            .where(Task.parent_task_id == parent_id)
            .order_by(Task.parent_linked_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_link_candidates(
        self,
        db: AsyncSession,
        *,
        parent: Task,
        limit: int = 50,
    ) -> list[Task]:
        """Top-level tasks of the parent's department that could become its subtask."""
        result = await db.execute(
            select(Task)
            .where(
                Task.id != parent.id,
                Task.parent_task_id.is_(None),
                Task.department == parent.department,
            )
            .order_by(Task.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def collect_subtree_ids(
        self, db: AsyncSession, *, root_id: uuid.UUID
    ) -> list[uuid.UUID]:
        """Breadth-first walk of the subtask tree rooted at ``root_id`` (inclusive)."""
        collected = [root_id]
        seen = {root_id}
        frontier = [root_id]
        while frontier:
            result = await db.execute(
                select(Task.id).where(Task.parent_task_id.in_(frontier))
            )
            frontier = [row[0] for row in result.all() if row[0] not in seen]
            seen.update(frontier)
            collected.extend(frontier)
        return collected

    async def delete_many(
        self, db: AsyncSession, *, task_ids: list[uuid.UUID]
    ) -> None:
        """
        Hard-delete tasks together with every row they own: comments,
        checklist, assignments, reassignment history, invitations,
        attachments and the activity log. Notifications survive with their task reference cleared.
        """
        comment_ids = select(Comment.id).where(Comment.task_id.in_(task_ids))
        await db.execute(
            update(Notification)
            .where(
                or_(
                    Notification.task_id.in_(task_ids),
                    Notification.comment_id.in_(comment_ids),
                )
            )
            .values(task_id=None, comment_id=None)
            .execution_options(synchronize_session=False)
        )
        for model in (
            Comment,
            TaskActivity,
            Attachment,
            ChecklistItem,
            TaskAssignee,
            TaskGroup,
            TaskReassignment,
            TaskInvitation,
        ):
            await db.execute(
                delete(model)
                .where(model.task_id.in_(task_ids))
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            delete(Task)
            .where(Task.id.in_(task_ids))
            .execution_options(synchronize_session=False)
        )
        await db.flush()

    async def count_assigned(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        statuses: Iterable[str] | None = None,
        exclude_statuses: Iterable[str] | None = None,
        due_from: datetime | None = None,
        due_before: datetime | None = None,
        exclude_archived: bool = False,
    ) -> int:
        """Count tasks currently assigned to ``user_id`` matching the given filters."""
        query = (
            select(func.count())
            .select_from(Task)
            .join(TaskAssignee, TaskAssignee.task_id == Task.id)
            .where(TaskAssignee.user_id == user_id)
        )
        if statuses is not None:
            query = query.where(Task.status.in_(list(statuses)))
        if exclude_statuses is not None:
            query = query.where(Task.status.not_in(list(exclude_statuses)))
        if due_from is not None:
            query = query.where(Task.due_date >= due_from)
        if due_before is not None:
            query = query.where(Task.due_date < due_before)
        if exclude_archived:
            query = query.where(Task.is_archived.is_(False))
        result = await db.execute(query)
        return result.scalar_one()

    async def count_assigned_by_status(
        self, db: AsyncSession, *, user_id: uuid.UUID
    ) -> dict[str, int]:
        """Live tasks assigned to ``user_id``, counted per status. Absent statuses are omitted."""
        result = await db.execute(
            select(Task.status, func.count())
            .join(TaskAssignee, TaskAssignee.task_id == Task.id)
            .where(TaskAssignee.user_id == user_id, Task.is_archived.is_(False))
            .group_by(Task.status)
        )
        return {status: count for status, count in result.all()}

    async def list_recent_for_user(
        self, db: AsyncSession, *, user_id: uuid.UUID, limit: int = 5
    ) -> list[Task]:
        """Live tasks the user created or is assigned to, most recently updated first."""
        assigned = select(TaskAssignee.task_id).where(TaskAssignee.user_id == user_id)
        result = await db.execute(
            select(Task)
            .where(
                or_(Task.created_by == user_id, Task.id.in_(assigned)),
                Task.is_archived.is_(False),
            )
            .order_by(Task.updated_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


crud_task = CRUDTask(Task)
