"""
Subtask tree and checklist operations.

Tasks form a forest through ``parent_task_id``. Every change to a checklist
or to a parent's set of subtasks recomputes the affected task's progress and
then walks up the ancestor chain, one locked read-modify-write per ancestor.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.config import settings
from taskrelay.core.exceptions import (
    AlreadyHasParentException,
    CycleDetectedException,
    NotFoundException,
    NotSubtaskException,
    SelfLinkException,
    ValidationException,
)
from taskrelay.crud.task import crud_task
from taskrelay.db.base import utcnow
from taskrelay.models.task import ChecklistItem, Task
from taskrelay.models.user import User
from taskrelay.schemas.task import ChecklistItemCreate, SubtaskCreate
from taskrelay.services import progress
from taskrelay.services.activity_service import activity_service
from taskrelay.services.permissions import assert_can_modify

logger = logging.getLogger(__name__)


class TaskTreeService:

    # ── Progress ──────────────────────────────────────────────────────────────

    async def recompute_progress(self, db: AsyncSession, *, task: Task) -> int:
        task.progress_percentage = progress.compute(
            task.checklist,
            [subtask.progress_percentage for subtask in task.subtasks],
        )
        await db.flush()
        return task.progress_percentage

    async def propagate_progress_upward(
        self, db: AsyncSession, *, task_id: uuid.UUID | None
    ) -> None:
        """Recompute ``task_id`` and then each of its ancestors up to the root."""
        current_id = task_id
        depth = 0
        while current_id is not None:
            if depth >= settings.MAX_TASK_DEPTH:
                logger.warning(
                    "Progress propagation from task %s stopped at depth %d",
                    task_id,
                    depth,
                )
                return
            task = await crud_task.get(db, current_id, for_update=True)
            if task is None:
                return
            await self.recompute_progress(db, task=task)
            current_id = task.parent_task_id
            depth += 1

    # ── Linkage ───────────────────────────────────────────────────────────────

    async def assert_can_nest_under(
        self,
        db: AsyncSession,
        *,
        parent_id: uuid.UUID,
        candidate_id: uuid.UUID | None = None,
    ) -> None:
        """
        Walk the prospective parent's ancestor chain. Reaching the candidate
        means the link would close a loop; a chain at the depth limit leaves
        no room for another level.
        """
        current_id: uuid.UUID | None = parent_id
        depth = 0
        while current_id is not None:
            if candidate_id is not None and current_id == candidate_id:
                raise CycleDetectedException()
            depth += 1
            if depth >= settings.MAX_TASK_DEPTH:
                raise ValidationException(
                    f"Subtasks cannot be nested more than {settings.MAX_TASK_DEPTH} levels deep"
                )
            current_id = await crud_task.get_parent_id(db, current_id)

    async def attach(
        self, db: AsyncSession, *, parent: Task, child: Task
    ) -> None:
        child.parent_linked_at = utcnow()
        parent.subtasks.append(child)
        await db.flush()

    async def create_subtask(
        self,
        db: AsyncSession,
        *,
        parent_id: uuid.UUID,
        subtask_in: SubtaskCreate,
        current_user: User,
    ) -> Task:
        """
        Create a task under ``parent_id``. It inherits the parent's
        department, due date and colour and starts Open at Medium priority.
        """
        parent = await crud_task.get(db, parent_id, for_update=True)
        if parent is None:
            raise NotFoundException("Task", str(parent_id))
        assert_can_modify(parent, current_user)
        await self.assert_can_nest_under(db, parent_id=parent.id)

        subtask = Task(
            title=subtask_in.title,
            description=f"Subtask of: {parent.title}",
            status="Open",
            priority="Medium",
            color=parent.color,
            department=parent.department,
            tags=[],
            created_by=current_user.id,
            start_date=utcnow(),
            due_date=parent.due_date,
        )
        await self.attach(db, parent=parent, child=subtask)

        await activity_service.append(
            db,
            task_id=subtask.id,
            type="created",
            user_id=current_user.id,
            description="Task created",
            meta={"status": subtask.status, "priority": subtask.priority},
        )
        await activity_service.append(
            db,
            task_id=parent.id,
            type="subtask_added",
            user_id=current_user.id,
            description=f'Created subtask: "{subtask.title}"',
            meta={"subtask_id": str(subtask.id), "subtask_title": subtask.title},
        )
        await self.propagate_progress_upward(db, task_id=parent.id)
        return await self._reload(db, subtask.id)

    async def link_existing(
        self,
        db: AsyncSession,
        *,
        parent_id: uuid.UUID,
        subtask_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        if parent_id == subtask_id:
            raise SelfLinkException()

        # Lock both rows in id order so concurrent links cannot deadlock.
        locked: dict[uuid.UUID, Task] = {}
        for task_id in sorted((parent_id, subtask_id)):
            task = await crud_task.get(db, task_id, for_update=True)
            if task is None:
                raise NotFoundException("Task", str(task_id))
            locked[task_id] = task
        parent, candidate = locked[parent_id], locked[subtask_id]
        assert_can_modify(parent, current_user)

        if candidate.parent_task_id is not None:
            raise AlreadyHasParentException()
        await self.assert_can_nest_under(db, parent_id=parent.id, candidate_id=candidate.id)

        await self.attach(db, parent=parent, child=candidate)
        await activity_service.append(
            db,
            task_id=parent.id,
            type="subtask_linked",
            user_id=current_user.id,
            description=f'Linked existing task as subtask: "{candidate.title}"',
            meta={"subtask_id": str(candidate.id), "subtask_title": candidate.title},
        )
        await self.propagate_progress_upward(db, task_id=parent.id)
        return await self._reload(db, candidate.id)

    async def unlink(
        self,
        db: AsyncSession,
        *,
        parent_id: uuid.UUID,
        subtask_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        """Detach a subtask; it becomes an independent top-level task."""
        parent = await crud_task.get(db, parent_id, for_update=True)
        if parent is None:
            raise NotFoundException("Task", str(parent_id))
        assert_can_modify(parent, current_user)

        subtask = next((s for s in parent.subtasks if s.id == subtask_id), None)
        if subtask is None:
            if not await crud_task.exists(db, id=subtask_id):
                raise NotFoundException("Task", str(subtask_id))
            raise NotSubtaskException()

        parent.subtasks.remove(subtask)
        subtask.parent_linked_at = None
        await db.flush()

        await activity_service.append(
            db,
            task_id=parent.id,
            type="subtask_unlinked",
            user_id=current_user.id,
            description=f'Unlinked subtask: "{subtask.title}"',
            meta={"subtask_id": str(subtask.id), "subtask_title": subtask.title},
        )
        await self.propagate_progress_upward(db, task_id=parent.id)
        return await self._reload(db, subtask.id)

    async def list_subtasks(
        self, db: AsyncSession, *, parent_id: uuid.UUID
    ) -> list[Task]:
        if not await crud_task.exists(db, id=parent_id):
            raise NotFoundException("Task", str(parent_id))
        return await crud_task.list_children(db, parent_id=parent_id)

    async def available_subtasks(
        self, db: AsyncSession, *, parent_id: uuid.UUID
    ) -> list[Task]:
        parent = await crud_task.get(db, parent_id)
        if parent is None:
            raise NotFoundException("Task", str(parent_id))
        return await crud_task.list_link_candidates(
            db, parent=parent, limit=settings.CANDIDATE_LIST_LIMIT
        )

    # ── Checklist ─────────────────────────────────────────────────────────────

    async def add_checklist_item(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        item_in: ChecklistItemCreate,
        current_user: User,
    ) -> Task:
        task = await self._get_for_checklist(db, task_id=task_id, current_user=current_user)

        position = max((item.position for item in task.checklist), default=-1) + 1
        item = ChecklistItem(text=item_in.text, position=position, is_completed=False)
        task.checklist.append(item)
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="checklist_added",
            user_id=current_user.id,
            description=f'Added checklist item: "{item.text}"',
            meta={"item_id": str(item.id), "text": item.text},
        )
        return await self._after_checklist_change(db, task=task)

    async def toggle_checklist_item(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        item_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        task = await self._get_for_checklist(db, task_id=task_id, current_user=current_user)
        item = self._find_item(task, item_id)

        item.is_completed = not item.is_completed
        item.completed_at = utcnow() if item.is_completed else None
        item.completed_by = current_user.id if item.is_completed else None
        await db.flush()

        verb = "Completed" if item.is_completed else "Uncompleted"
        await activity_service.append(
            db,
            task_id=task.id,
            type="checklist_completed" if item.is_completed else "checklist_uncompleted",
            user_id=current_user.id,
            description=f'{verb} checklist item: "{item.text}"',
            meta={"item_id": str(item.id), "text": item.text, "completed": item.is_completed},
        )
        return await self._after_checklist_change(db, task=task)

    async def delete_checklist_item(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        item_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        task = await self._get_for_checklist(db, task_id=task_id, current_user=current_user)
        item = self._find_item(task, item_id)

        text = item.text
        task.checklist.remove(item)
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="checklist_deleted",
            user_id=current_user.id,
            description=f'Deleted checklist item: "{text}"',
            meta={"item_id": str(item_id), "text": text},
        )
        return await self._after_checklist_change(db, task=task)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _get_for_checklist(
        self, db: AsyncSession, *, task_id: uuid.UUID, current_user: User
    ) -> Task:
        task = await crud_task.get(db, task_id, for_update=True)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        assert_can_modify(task, current_user)
        return task

    @staticmethod
    def _find_item(task: Task, item_id: uuid.UUID) -> ChecklistItem:
        for item in task.checklist:
            if item.id == item_id:
                return item
        raise NotFoundException("Checklist item", str(item_id))

    async def _after_checklist_change(self, db: AsyncSession, *, task: Task) -> Task:
        # The task itself is recomputed here; only its ancestors need the walk.
        await self.recompute_progress(db, task=task)
        await self.propagate_progress_upward(db, task_id=task.parent_task_id)
        return await self._reload(db, task.id)

    @staticmethod
    async def _reload(db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task


task_tree_service = TaskTreeService()
