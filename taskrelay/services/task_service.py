"""
Task lifecycle service.
Creation, field updates with per-field activity diffing, status handling,
listing, archiving and cascading hard delete.

Status transitions are deliberately unconstrained: any status may follow
any other. Entering Completed stamps ``completed_date`` and refreshes the
statistics of every assignee; leaving it clears the stamp again.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.config import settings
from taskrelay.core.constants import STATUS_COMPLETED
from taskrelay.core.exceptions import NotFoundException, PermissionDeniedException
from taskrelay.crud.group import crud_group
from taskrelay.crud.task import crud_task
from taskrelay.crud.user import crud_user
from taskrelay.db.base import as_utc, utcnow
from taskrelay.models.task import ChecklistItem, Task, TaskAssignee, TaskGroup
from taskrelay.models.user import User
from taskrelay.schemas.pagination import page_offset
from taskrelay.schemas.task import TaskCreate, TaskFilter, TaskUpdate
from taskrelay.services import progress, role_hierarchy
from taskrelay.services.activity_service import activity_service
from taskrelay.services.notification_service import notification_service
from taskrelay.services.permissions import assert_can_manage, assert_can_modify
from taskrelay.services.task_tree_service import task_tree_service
from taskrelay.services.user_stats_service import user_stats_service

logger = logging.getLogger(__name__)

# (activity type, description, meta) produced by diffing an update.
ActivityEntry = tuple[str, str, dict[str, Any]]


def diff_task(task: Task, changes: dict[str, Any]) -> list[ActivityEntry]:
    """One entry per tracked field whose value actually changes, plus one per tag."""
    entries: list[ActivityEntry] = []

    if "status" in changes and changes["status"] != task.status:
        entries.append((
            "status_changed",
            f"Status changed from {task.status} to {changes['status']}",
            {"from": task.status, "to": changes["status"]},
        ))

    if "priority" in changes and changes["priority"] != task.priority:
        entries.append((
            "priority_changed",
            f"Priority changed from {task.priority} to {changes['priority']}",
            {"from": task.priority, "to": changes["priority"]},
        ))

    if "title" in changes and changes["title"] != task.title:
        entries.append((
            "title_changed",
            f'Title changed from "{task.title}" to "{changes["title"]}"',
            {"from": task.title, "to": changes["title"]},
        ))

    if "description" in changes and changes["description"] != task.description:
        entries.append(("description_changed", "Description updated", {}))

    if "due_date" in changes:
        old_due, new_due = as_utc(task.due_date), as_utc(changes["due_date"])
        if new_due != old_due:
            entries.append((
                "due_date_changed",
                "Due date changed",
                {
                    "from": old_due.isoformat() if old_due else None,
                    "to": new_due.isoformat() if new_due else None,
                },
            ))

    if "tags" in changes:
        old_tags = list(task.tags or [])
        new_tags = changes["tags"]
        for tag in new_tags:
            if tag not in old_tags:
                entries.append(("tag_added", f'Added tag "{tag}"', {"tag": tag}))
        for tag in old_tags:
            if tag not in new_tags:
                entries.append(("tag_removed", f'Removed tag "{tag}"', {"tag": tag}))

    return entries


class TaskService:

    async def create_task(
        self,
        db: AsyncSession,
        *,
        task_in: TaskCreate,
        current_user: User,
    ) -> Task:
        """
        Create a task, optionally directly under a parent.
        Top-level tasks need a role that can delegate; progress is seeded from
        any checklist supplied; initial assignees and group members are notified.
        """
        if task_in.parent_task_id is None and not role_hierarchy.has_creation_rights(
            current_user.role
        ):
            raise PermissionDeniedException(f"A {current_user.role} cannot create tasks")

        for user_id in task_in.assigned_to:
            user = await crud_user.get(db, user_id)
            if user is None:
                raise NotFoundException("User", str(user_id))
        if task_in.assigned_groups:
            found = {g.id for g in await crud_group.get_many(db, group_ids=task_in.assigned_groups)}
            for group_id in task_in.assigned_groups:
                if group_id not in found:
                    raise NotFoundException("Group", str(group_id))

        parent: Task | None = None
        if task_in.parent_task_id is not None:
            parent = await crud_task.get(db, task_in.parent_task_id, for_update=True)
            if parent is None:
                raise NotFoundException("Task", str(task_in.parent_task_id))
            assert_can_modify(parent, current_user)
            await task_tree_service.assert_can_nest_under(db, parent_id=parent.id)

        now = utcnow()
        checklist = [
            ChecklistItem(
                position=position,
                text=seed.text,
                is_completed=seed.is_completed,
                completed_at=now if seed.is_completed else None,
                completed_by=current_user.id if seed.is_completed else None,
            )
            for position, seed in enumerate(task_in.checklist)
        ]
        task = Task(
            title=task_in.title,
            description=task_in.description,
            status=task_in.status,
            priority=task_in.priority,
            color=task_in.color or settings.DEFAULT_TASK_COLOR,
            department=task_in.department or current_user.department,
            tags=task_in.tags,
            created_by=current_user.id,
            start_date=as_utc(task_in.start_date) or now,
            due_date=as_utc(task_in.due_date),
            is_open_for_claims=task_in.is_open_for_claims,
            progress_percentage=progress.compute(checklist, []),
            assignee_links=[TaskAssignee(user_id=user_id) for user_id in task_in.assigned_to],
            group_links=[TaskGroup(group_id=group_id) for group_id in task_in.assigned_groups],
            checklist=checklist,
        )
        if parent is not None:
            await task_tree_service.attach(db, parent=parent, child=task)
        else:
            db.add(task)
            await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="created",
            user_id=current_user.id,
            description="Task created",
            meta={"status": task.status, "priority": task.priority},
        )
        if parent is not None:
            await activity_service.append(
                db,
                task_id=parent.id,
                type="subtask_added",
                user_id=current_user.id,
                description=f'Created subtask: "{task.title}"',
                meta={"subtask_id": str(task.id), "subtask_title": task.title},
            )
            await task_tree_service.propagate_progress_upward(db, task_id=parent.id)

        logger.info("Task %s created by %s", task.id, current_user.id)

        await notification_service.dispatch_many(
            db,
            recipient_ids=task_in.assigned_to,
            sender_id=current_user.id,
            type="task_assigned",
            task_id=task.id,
            message=f"You have been assigned to task: {task.title}",
        )
        if task_in.assigned_groups:
            member_ids = await crud_group.get_member_ids(db, group_ids=task_in.assigned_groups)
            await notification_service.dispatch_many(
                db,
                recipient_ids=sorted(member_ids - set(task_in.assigned_to)),
                sender_id=current_user.id,
                type="task_assigned",
                task_id=task.id,
                message=f"New task assigned to your group: {task.title}",
            )

        return await self.get_task(db, task_id=task.id)

    async def get_task(self, db: AsyncSession, *, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task

    async def list_tasks(
        self, db: AsyncSession, *, filters: TaskFilter
    ) -> tuple[list[Task], int]:
        return await crud_task.list_with_filters(db, filters=filters)

    async def list_feed(
        self,
        db: AsyncSession,
        *,
        current_user: User,
        page: int = 1,
        size: int = 20,
    ) -> tuple[list[Task], int]:
        """Tasks in the caller's department that are still up for grabs."""
        return await crud_task.list_claimable(
            db,
            department=current_user.department,
            skip=page_offset(page, size),
            limit=size,
        )

    async def apply_update(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        task_in: TaskUpdate,
        current_user: User,
    ) -> Task:
        """
        Apply a partial update. Every changed field among status, priority,
        title, description and due date gets its own activity entry;
        unchanged fields produce none.
        """
        task = await crud_task.get(db, task_id, for_update=True)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        assert_can_modify(task, current_user)

        changes = task_in.model_dump(exclude_unset=True, exclude_none=True)
        if "due_date" in changes:
            changes["due_date"] = as_utc(changes["due_date"])
        entries = diff_task(task, changes)

        old_status = task.status
        new_status = changes.get("status", old_status)
        entering_completed = new_status == STATUS_COMPLETED and old_status != STATUS_COMPLETED
        leaving_completed = old_status == STATUS_COMPLETED and new_status != STATUS_COMPLETED

        for field, value in changes.items():
            setattr(task, field, value)
        if entering_completed:
            task.completed_date = utcnow()
        elif leaving_completed:
            task.completed_date = None
        await db.flush()

        for type_, description, meta in entries:
            await activity_service.append(
                db,
                task_id=task.id,
                type=type_,
                user_id=current_user.id,
                description=description,
                meta=meta,
            )

        if "progress_percentage" in changes and task.parent_task_id is not None:
            await task_tree_service.propagate_progress_upward(db, task_id=task.parent_task_id)

        if entering_completed:
            for user_id in task.assigned_to:
                await user_stats_service.record_completion(db, user_id=user_id)
            logger.info("Task %s completed by %s", task.id, current_user.id)
            if task.created_by != current_user.id:
                await notification_service.dispatch(
                    db,
                    recipient_id=task.created_by,
                    sender_id=current_user.id,
                    type="task_completed",
                    task_id=task.id,
                    message=f"completed task: {task.title}",
                )

        return await self.get_task(db, task_id=task.id)

    async def archive_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        """Soft delete: hidden from active listings, log and history kept."""
        task = await crud_task.get(db, task_id, for_update=True)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        assert_can_manage(task, current_user)

        task.is_archived = True
        await db.flush()
        logger.info("Task %s archived by %s", task.id, current_user.id)
        return await self.get_task(db, task_id=task.id)

    async def delete_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        current_user: User,
    ) -> int:
        """Hard delete the task and its whole subtask subtree. Returns the number of tasks removed."""
        task = await crud_task.get(db, task_id, for_update=True)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        assert_can_manage(task, current_user)

        parent_id = task.parent_task_id
        task_ids = await crud_task.collect_subtree_ids(db, root_id=task.id)
        await crud_task.delete_many(db, task_ids=task_ids)
        for obj in list(db.identity_map.values()):
            if isinstance(obj, Task) and obj.id in task_ids:
                db.expunge(obj)
        logger.info(
            "Task %s and %d subtask(s) deleted by %s",
            task_id,
            len(task_ids) - 1,
            current_user.id,
        )

        if parent_id is not None:
            await task_tree_service.propagate_progress_upward(db, task_id=parent_id)
        return len(task_ids)


task_service = TaskService()
