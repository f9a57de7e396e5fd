"""
Activity log tests.
Covers: newest-first ordering, one entry per mutating operation, retention on archive.
"""
from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.exceptions import AlreadyClaimedException
from taskrelay.schemas.task import TaskUpdate
from taskrelay.services.activity_service import activity_service
from taskrelay.services.assignment_service import assignment_service
from taskrelay.services.task_service import task_service

pytestmark = pytest.mark.asyncio


async def _count(db: AsyncSession, task_id) -> int:
    _, total = await activity_service.list_for_task(db, task_id=task_id)
    return total


class TestOrdering:
    async def test_newest_first(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead, priority="Low")
        await task_service.apply_update(
            db, task_id=task.id, task_in=TaskUpdate(priority="High"), current_user=lead
        )
        await task_service.apply_update(
            db, task_id=task.id, task_in=TaskUpdate(title="Renamed"), current_user=lead
        )

        entries, total = await activity_service.list_for_task(db, task_id=task.id)
        assert total == 3
        assert [e.type for e in entries] == ["title_changed", "priority_changed", "created"]
        assert entries[1].meta == {"from": "Low", "to": "High"}
        assert entries[0].user_id == lead.id

    async def test_pagination(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead)
        for title in ("one", "two", "three"):
            await task_service.apply_update(
                db, task_id=task.id, task_in=TaskUpdate(title=title), current_user=lead
            )

        page, total = await activity_service.list_for_task(db, task_id=task.id, page=2, size=2)
        assert total == 4
        assert [e.meta.get("to") for e in page] == ["one", None]


class TestOneEntryPerOperation:
    async def test_assignment_operations(
        self, db: AsyncSession, lead, employee, employee2, make_task
    ) -> None:
        task = await make_task(lead, is_open_for_claims=True)
        count = await _count(db, task.id)

        await assignment_service.claim(db, task_id=task.id, current_user=employee)
        assert await _count(db, task.id) == count + 1

        await assignment_service.reassign(
            db, task_id=task.id, target_user_id=employee2.id, current_user=lead
        )
        assert await _count(db, task.id) == count + 2

        await assignment_service.unassign(
            db, task_id=task.id, target_user_id=employee2.id, current_user=employee2
        )
        assert await _count(db, task.id) == count + 3

    async def test_rejected_operation_writes_nothing(
        self, db: AsyncSession, lead, employee, employee2, make_task
    ) -> None:
        task = await make_task(lead, is_open_for_claims=True)
        await assignment_service.claim(db, task_id=task.id, current_user=employee)
        count = await _count(db, task.id)

        with pytest.raises(AlreadyClaimedException):
            await assignment_service.claim(db, task_id=task.id, current_user=employee2)
        assert await _count(db, task.id) == count

    async def test_noop_update_writes_nothing(self, db: AsyncSession, lead, make_task) -> None:
        task = await make_task(lead, title="Same")
        await task_service.apply_update(
            db, task_id=task.id, task_in=TaskUpdate(title="Same"), current_user=lead
        )
        assert await _count(db, task.id) == 1


class TestRetention:
    async def test_archive_keeps_log_and_history(
        self, db: AsyncSession, lead, employee, make_task
    ) -> None:
        task = await make_task(lead)
        await assignment_service.reassign(
            db, task_id=task.id, target_user_id=employee.id, current_user=lead, reason="cover"
        )
        before = await _count(db, task.id)

        await task_service.archive_task(db, task_id=task.id, current_user=lead)

        archived = await task_service.get_task(db, task_id=task.id)
        assert archived.is_archived is True
        assert len(archived.reassign_history) == 1
        assert archived.reassign_history[0].reason == "cover"
        assert await _count(db, task.id) == before
