"""
Subtask hierarchy and checklist tests.
Covers: subtask creation, linking rules, unlinking, progress propagation.
"""
from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.config import settings
from taskrelay.core.exceptions import (
    AlreadyHasParentException,
    CycleDetectedException,
    NotFoundException,
    NotSubtaskException,
    PermissionDeniedException,
    SelfLinkException,
    ValidationException,
)
from taskrelay.crud.activity import crud_activity
from taskrelay.crud.task import crud_task
from taskrelay.schemas.task import ChecklistItemCreate, ChecklistItemSeed, SubtaskCreate
from taskrelay.services.task_tree_service import task_tree_service

pytestmark = pytest.mark.asyncio


async def _subtask(db: AsyncSession, parent, user, title: str = "sub"):
    return await task_tree_service.create_subtask(
        db, parent_id=parent.id, subtask_in=SubtaskCreate(title=title), current_user=user
    )


class TestCreateSubtask:
    async def test_inherits_from_parent(self, db: AsyncSession, lead, make_task) -> None:
        parent = await make_task(lead, color="#FF0000", priority="Urgent", status="Pending")
        subtask = await _subtask(db, parent, lead, "Write tests")

        assert subtask.parent_task_id == parent.id
        assert subtask.department == parent.department
        assert subtask.color == "#FF0000"
        assert subtask.due_date == parent.due_date
        assert subtask.status == "Open"
        assert subtask.priority == "Medium"

        entries, _ = await crud_activity.list_by_task(db, task_id=parent.id)
        assert entries[0].type == "subtask_added"
        assert entries[0].meta["subtask_id"] == str(subtask.id)

    async def test_requires_stake_in_parent(self, db: AsyncSession, lead, employee, make_task) -> None:
        parent = await make_task(lead)
        with pytest.raises(PermissionDeniedException):
            await _subtask(db, parent, employee)

    async def test_depth_is_bounded(
        self, db: AsyncSession, lead, make_task, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "MAX_TASK_DEPTH", 3)
        root = await make_task(lead)
        child = await _subtask(db, root, lead)
        grandchild = await _subtask(db, child, lead)
        with pytest.raises(ValidationException):
            await _subtask(db, grandchild, lead)


class TestLinkExisting:
    async def test_link_and_parent_progress(self, db: AsyncSession, lead, make_task) -> None:
        parent = await make_task(lead)
        candidate = await make_task(
            lead, checklist=[ChecklistItemSeed(text="done", is_completed=True)]
        )

        linked = await task_tree_service.link_existing(
            db, parent_id=parent.id, subtask_id=candidate.id, current_user=lead
        )

        assert linked.parent_task_id == parent.id
        parent = await crud_task.get(db, parent.id)
        assert parent.subtask_ids == [candidate.id]
        assert parent.progress_percentage == 100

    async def test_self_link_rejected(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead)
        with pytest.raises(SelfLinkException):
            await task_tree_service.link_existing(
                db, parent_id=task.id, subtask_id=task.id, current_user=lead
            )

    async def test_candidate_with_parent_rejected(self, db: AsyncSession, lead, make_task) -> None:
        first = await make_task(lead)
        second = await make_task(lead)
        child = await _subtask(db, first, lead)
        with pytest.raises(AlreadyHasParentException):
            await task_tree_service.link_existing(
                db, parent_id=second.id, subtask_id=child.id, current_user=lead
            )

    async def test_cycle_rejected(self, db: AsyncSession, lead, make_task) -> None:
        a = await make_task(lead, title="A")
        b = await make_task(lead, title="B")
        await task_tree_service.link_existing(db, parent_id=a.id, subtask_id=b.id, current_user=lead)

        await task_tree_service.unlink(db, parent_id=a.id, subtask_id=b.id, current_user=lead)
        await task_tree_service.link_existing(db, parent_id=b.id, subtask_id=a.id, current_user=lead)
        c = await _subtask(db, a, lead, "C")

        # B -> A -> C: hanging B under C would close the loop.
        with pytest.raises(CycleDetectedException):
            await task_tree_service.link_existing(
                db, parent_id=c.id, subtask_id=b.id, current_user=lead
            )

    async def test_direct_reverse_link_rejected(self, db: AsyncSession, lead, make_task) -> None:
        a = await make_task(lead, title="A")
        b = await _subtask(db, a, lead, "B")
        # B already has A above it; A is top-level, so only the cycle check can refuse.
        with pytest.raises(CycleDetectedException):
            await task_tree_service.link_existing(
                db, parent_id=b.id, subtask_id=a.id, current_user=lead
            )

    async def test_unknown_task(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead)
        with pytest.raises(NotFoundException):
            await task_tree_service.link_existing(
                db, parent_id=task.id, subtask_id=uuid.uuid4(), current_user=lead
            )


class TestUnlink:
    async def test_unlink_makes_top_level(self, db: AsyncSession, lead, make_task) -> None:
        parent = await make_task(lead)
        child = await _subtask(db, parent, lead)

        child = await task_tree_service.unlink(
            db, parent_id=parent.id, subtask_id=child.id, current_user=lead
        )

        assert child.parent_task_id is None
        assert child.parent_linked_at is None
        parent = await crud_task.get(db, parent.id)
        assert parent.subtask_ids == []
        entries, _ = await crud_activity.list_by_task(db, task_id=parent.id)
        assert entries[0].type == "subtask_unlinked"

    async def test_not_a_subtask(self, db: AsyncSession, lead, make_task) -> None:
        parent = await make_task(lead)
        other = await make_task(lead)
        with pytest.raises(NotSubtaskException):
            await task_tree_service.unlink(
                db, parent_id=parent.id, subtask_id=other.id, current_user=lead
            )


class TestChecklist:
    async def test_add_then_toggle(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead, checklist=[ChecklistItemSeed(text="Draft plan")])

        task = await task_tree_service.add_checklist_item(
            db, task_id=task.id, item_in=ChecklistItemCreate(text="Review"), current_user=lead
        )
        assert len(task.checklist) == 2
        assert task.progress_percentage == 0

        first = next(item for item in task.checklist if item.text == "Draft plan")
        task = await task_tree_service.toggle_checklist_item(
            db, task_id=task.id, item_id=first.id, current_user=lead
        )
        assert task.progress_percentage == 50
        first = next(item for item in task.checklist if item.text == "Draft plan")
        assert first.is_completed is True
        assert first.completed_by == lead.id

        entries, _ = await crud_activity.list_by_task(db, task_id=task.id)
        assert [e.type for e in entries[:2]] == ["checklist_completed", "checklist_added"]

    async def test_toggle_back_and_delete(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(
            lead,
            checklist=[
                ChecklistItemSeed(text="a", is_completed=True),
                ChecklistItemSeed(text="b"),
            ],
        )
        item_a, item_b = task.checklist

        task = await task_tree_service.toggle_checklist_item(
            db, task_id=task.id, item_id=item_a.id, current_user=lead
        )
        assert task.progress_percentage == 0
        assert task.checklist[0].completed_at is None

        task = await task_tree_service.toggle_checklist_item(
            db, task_id=task.id, item_id=item_b.id, current_user=lead
        )
        task = await task_tree_service.delete_checklist_item(
            db, task_id=task.id, item_id=item_a.id, current_user=lead
        )
        assert [item.text for item in task.checklist] == ["b"]
        assert task.progress_percentage == 100

    async def test_unknown_item(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead)
        with pytest.raises(NotFoundException):
            await task_tree_service.toggle_checklist_item(
                db, task_id=task.id, item_id=uuid.uuid4(), current_user=lead
            )

    async def test_subtask_toggle_reaches_every_ancestor(
        self, db: AsyncSession, lead, make_task
    ) -> None:
        root = await make_task(lead, checklist=[ChecklistItemSeed(text="root item")])
        child = await _subtask(db, root, lead, "child")
        leaf = await _subtask(db, child, lead, "leaf")
        leaf = await task_tree_service.add_checklist_item(
            db, task_id=leaf.id, item_in=ChecklistItemCreate(text="x"), current_user=lead
        )

        leaf = await task_tree_service.toggle_checklist_item(
            db, task_id=leaf.id, item_id=leaf.checklist[0].id, current_user=lead
        )

        assert leaf.progress_percentage == 100
        child = await crud_task.get(db, child.id)
        assert child.progress_percentage == 100
        root = await crud_task.get(db, root.id)
        # 0.5 * 0 (checklist) + 0.5 * 100 (child)
        assert root.progress_percentage == 50
