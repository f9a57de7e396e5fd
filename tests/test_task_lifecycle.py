"""
Task lifecycle tests.
Covers: creation rights, update diffing, completion side effects, archive and hard delete.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.exceptions import NotFoundException, PermissionDeniedException
from taskrelay.crud.activity import crud_activity
from taskrelay.crud.task import crud_task
from taskrelay.models.activity import TaskActivity
from taskrelay.models.notification import Notification
from taskrelay.models.task import Task
from taskrelay.schemas.task import ChecklistItemSeed, SubtaskCreate, TaskFilter, TaskUpdate
from taskrelay.services.task_service import diff_task, task_service
from taskrelay.services.task_tree_service import task_tree_service
from taskrelay.services.user_stats_service import next_streak, user_stats_service
from tests.conftest import days_from_now

pytestmark = pytest.mark.asyncio


async def _activity_types(db: AsyncSession, task_id) -> list[str]:
    entries, _ = await crud_activity.list_by_task(db, task_id=task_id)
    return [e.type for e in entries]


class TestCreateTask:
    async def test_create_defaults(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead, title="Ship release", tags=[" api ", "api", ""])

        assert task.status == "Open"
        assert task.priority == "Medium"
        assert task.department == lead.department
        assert task.tags == ["api"]
        assert task.progress_percentage == 0
        assert task.reassign_count == 0
        assert task.assigned_to == []
        assert await _activity_types(db, task.id) == ["created"]

    async def test_seeded_checklist_sets_progress(self, lead, make_task) -> None:
        task = await make_task(
            lead,
            checklist=[
                ChecklistItemSeed(text="one", is_completed=True),
                ChecklistItemSeed(text="two"),
                ChecklistItemSeed(text="three"),
            ],
        )
        assert task.progress_percentage == 33
        assert [item.text for item in task.checklist] == ["one", "two", "three"]

    async def test_leaf_role_cannot_create_top_level(self, employee, make_task) -> None:
        with pytest.raises(PermissionDeniedException):
            await make_task(employee)

    async def test_assignees_are_notified(
        self, db: AsyncSession, lead, employee, employee2, make_task
    ) -> None:
        task = await make_task(lead, assigned_to=[employee.id, employee2.id, employee.id])

        assert task.assigned_to == [employee.id, employee2.id]
        result = await db.execute(
            select(Notification.recipient_id).where(Notification.task_id == task.id)
        )
        assert sorted(r[0] for r in result.all()) == sorted([employee.id, employee2.id])

    async def test_unknown_assignee_rejected(self, lead, make_task) -> None:
        with pytest.raises(NotFoundException):
            await make_task(lead, assigned_to=[uuid.uuid4()])

    async def test_assignee_may_create_under_parent(
        self, db: AsyncSession, lead, employee, make_task
    ) -> None:
        parent = await make_task(lead, assigned_to=[employee.id])
        child = await make_task(employee, title="Piece", parent_task_id=parent.id)

        assert child.parent_task_id == parent.id
        reloaded = await crud_task.get(db, parent.id)
        assert reloaded.subtask_ids == [child.id]


class TestDiffTask:
    def _task(self) -> Task:
        return Task(
            title="Old",
            description="desc",
            status="Open",
            priority="Low",
            tags=["a", "b"],
            due_date=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

    def test_unchanged_fields_produce_nothing(self) -> None:
        task = self._task()
        assert diff_task(task, {"title": "Old", "status": "Open", "tags": ["a", "b"]}) == []

    def test_each_changed_field_gets_one_entry(self) -> None:
        task = self._task()
        entries = diff_task(
            task,
            {
                "status": "In Progress",
                "priority": "High",
                "title": "New",
                "description": "other",
                "due_date": datetime(2030, 2, 1, tzinfo=timezone.utc),
            },
        )
        assert [e[0] for e in entries] == [
            "status_changed",
            "priority_changed",
            "title_changed",
            "description_changed",
            "due_date_changed",
        ]
        assert entries[0][2] == {"from": "Open", "to": "In Progress"}

    def test_naive_and_aware_due_dates_compare_equal(self) -> None:
        task = self._task()
        task.due_date = datetime(2030, 1, 1)
        assert diff_task(task, {"due_date": datetime(2030, 1, 1, tzinfo=timezone.utc)}) == []

    def test_tag_changes_are_itemised(self) -> None:
        entries = diff_task(self._task(), {"tags": ["b", "c"]})
        assert [(e[0], e[2]["tag"]) for e in entries] == [
            ("tag_added", "c"),
            ("tag_removed", "a"),
        ]


class TestApplyUpdate:
    async def test_logs_only_changed_fields(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead, title="Same", priority="Low")
        await task_service.apply_update(
            db,
            task_id=task.id,
            task_in=TaskUpdate(title="Same", status="In Progress", priority="High"),
            current_user=lead,
        )
        types = await _activity_types(db, task.id)
        assert sorted(types[:2]) == ["priority_changed", "status_changed"]
        assert "title_changed" not in types

    async def test_any_status_may_follow_any_other(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead)
        for status in ("Cancelled", "Open", "Blocked", "Completed", "Pending"):
            task = await task_service.apply_update(
                db, task_id=task.id, task_in=TaskUpdate(status=status), current_user=lead
            )
            assert task.status == status

    async def test_completion_stamps_and_reopening_clears(
        self, db: AsyncSession, lead, employee, make_task
    ) -> None:
        task = await make_task(lead, assigned_to=[employee.id])

        task = await task_service.apply_update(
            db, task_id=task.id, task_in=TaskUpdate(status="Completed"), current_user=employee
        )
        assert task.completed_date is not None
        assert employee.tasks_completed == 1
        assert employee.current_streak == 1

        result = await db.execute(
            select(Notification).where(
                Notification.recipient_id == lead.id, Notification.type == "task_completed"
            )
        )
        assert result.scalar_one().task_id == task.id

        task = await task_service.apply_update(
            db, task_id=task.id, task_in=TaskUpdate(status="In Progress"), current_user=employee
        )
        assert task.completed_date is None

    async def test_outsider_cannot_update(self, db: AsyncSession, lead, employee, make_task) -> None:
        task = await make_task(lead)
        with pytest.raises(PermissionDeniedException):
            await task_service.apply_update(
                db, task_id=task.id, task_in=TaskUpdate(title="Mine now"), current_user=employee
            )

    async def test_manual_progress_propagates_to_parent(
        self, db: AsyncSession, lead, make_task
    ) -> None:
        parent = await make_task(lead)
        child = await task_tree_service.create_subtask(
            db, parent_id=parent.id, subtask_in=SubtaskCreate(title="child"), current_user=lead
        )
        await task_service.apply_update(
            db,
            task_id=child.id,
            task_in=TaskUpdate(progress_percentage=80),
            current_user=lead,
        )
        parent = await crud_task.get(db, parent.id)
        assert parent.progress_percentage == 80


class TestUserStats:
    @pytest.mark.parametrize(
        "current, last, expected",
        [
            (0, None, 1),
            (3, date(2026, 5, 10), 3),
            (3, date(2026, 5, 9), 4),
            (3, date(2026, 5, 1), 1),
        ],
    )
    def test_next_streak(self, current: int, last: date | None, expected: int) -> None:
        assert next_streak(current, last, date(2026, 5, 10)) == expected

    async def test_streak_runs_across_days(self, db: AsyncSession, employee) -> None:
        day1 = datetime(2026, 5, 9, 12, tzinfo=timezone.utc)
        await user_stats_service.record_completion(db, user_id=employee.id, now=day1)
        await user_stats_service.record_completion(
            db, user_id=employee.id, now=day1 + timedelta(days=1)
        )
        assert employee.current_streak == 2
        assert employee.longest_streak == 2

        await user_stats_service.record_completion(
            db, user_id=employee.id, now=day1 + timedelta(days=5)
        )
        assert employee.current_streak == 1
        assert employee.longest_streak == 2

    async def test_overdue_count(self, db: AsyncSession, lead, employee, make_task) -> None:
        await make_task(lead, assigned_to=[employee.id], due_date=days_from_now(-2))
        await make_task(lead, assigned_to=[employee.id], due_date=days_from_now(3))
        await user_stats_service.record_completion(db, user_id=employee.id)
        assert employee.tasks_overdue == 1


class TestArchiveAndDelete:
    async def test_archive_hides_from_listing(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead)
        await task_service.archive_task(db, task_id=task.id, current_user=lead)

        active, _ = await task_service.list_tasks(db, filters=TaskFilter())
        assert task.id not in [t.id for t in active]
        archived, _ = await task_service.list_tasks(db, filters=TaskFilter(is_archived=True))
        assert task.id in [t.id for t in archived]

    async def test_only_creator_may_archive(self, db: AsyncSession, lead, employee, make_task) -> None:
        task = await make_task(lead, assigned_to=[employee.id])
        with pytest.raises(PermissionDeniedException):
            await task_service.archive_task(db, task_id=task.id, current_user=employee)

    async def test_delete_removes_subtree_and_log(
        self, db: AsyncSession, lead, make_task
    ) -> None:
        root = await make_task(lead)
        child = await task_tree_service.create_subtask(
            db, parent_id=root.id, subtask_in=SubtaskCreate(title="child"), current_user=lead
        )
        grandchild = await task_tree_service.create_subtask(
            db, parent_id=child.id, subtask_in=SubtaskCreate(title="grandchild"), current_user=lead
        )

        removed = await task_service.delete_task(db, task_id=root.id, current_user=lead)

        assert removed == 3
        for task_id in (root.id, child.id, grandchild.id):
            assert await crud_task.get(db, task_id) is None
        count = await db.execute(select(func.count()).select_from(TaskActivity))
        assert count.scalar_one() == 0

    async def test_delete_subtask_updates_parent(self, db: AsyncSession, lead, make_task) -> None:
        parent = await make_task(lead)
        done = await task_tree_service.create_subtask(
            db, parent_id=parent.id, subtask_in=SubtaskCreate(title="done"), current_user=lead
        )
        await task_tree_service.create_subtask(
            db, parent_id=parent.id, subtask_in=SubtaskCreate(title="todo"), current_user=lead
        )
        await task_service.apply_update(
            db, task_id=done.id, task_in=TaskUpdate(progress_percentage=100), current_user=lead
        )
        assert (await crud_task.get(db, parent.id)).progress_percentage == 50

        await task_service.delete_task(db, task_id=done.id, current_user=lead)

        parent = await crud_task.get(db, parent.id)
        assert len(parent.subtask_ids) == 1
        assert parent.progress_percentage == 0
