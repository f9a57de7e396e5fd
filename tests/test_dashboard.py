"""
Dashboard tests.
Covers: per-status counts, overdue and due-today windows, archived tasks,
recent tasks and who may read a dashboard.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.constants import TASK_STATUSES
from taskrelay.core.exceptions import PermissionDeniedException
from taskrelay.schemas.task import TaskUpdate
from taskrelay.services.task_service import task_service
from taskrelay.services.user_stats_service import user_stats_service
from tests.conftest import auth_headers

pytestmark = pytest.mark.asyncio


def noon_today() -> datetime:
    return datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)


class TestDashboard:
    async def test_counts(self, db: AsyncSession, lead, employee, make_task) -> None:
        now = noon_today()
        assigned = [employee.id]
        await make_task(lead, title="Today", assigned_to=assigned, due_date=now + timedelta(hours=2))
        await make_task(lead, title="Late", assigned_to=assigned, due_date=now - timedelta(days=2))
        await make_task(lead, title="Later", assigned_to=assigned, due_date=now + timedelta(days=3))
        done = await make_task(
            lead, title="Done", assigned_to=assigned, due_date=now - timedelta(days=1)
        )
        await task_service.apply_update(
            db, task_id=done.id, task_in=TaskUpdate(status="Completed"), current_user=lead
        )
        archived = await make_task(
            lead, title="Shelved", assigned_to=assigned, due_date=now - timedelta(days=1)
        )
        await task_service.archive_task(db, task_id=archived.id, current_user=lead)

        dashboard = await user_stats_service.dashboard(
            db, user_id=employee.id, current_user=employee, now=now
        )

        assert set(dashboard.tasks_by_status) == set(TASK_STATUSES)
        assert dashboard.tasks_by_status["Open"] == 3
        assert dashboard.tasks_by_status["Completed"] == 1
        assert dashboard.tasks_by_status["Blocked"] == 0
        assert dashboard.overdue_tasks == 1
        assert dashboard.tasks_due_today == 1
        assert dashboard.stats.tasks_completed == 1
        assert {task.title for task in dashboard.recent_tasks} == {
            "Today",
            "Late",
            "Later",
            "Done",
        }

    async def test_recent_tasks_are_latest_five(
        self, db: AsyncSession, lead, employee, make_task
    ) -> None:
        tasks = [
            await make_task(lead, title=f"Task {n}", assigned_to=[employee.id])
            for n in range(6)
        ]
        await task_service.apply_update(
            db, task_id=tasks[0].id, task_in=TaskUpdate(title="Touched"), current_user=lead
        )

        dashboard = await user_stats_service.dashboard(
            db, user_id=employee.id, current_user=employee
        )

        assert len(dashboard.recent_tasks) == 5
        assert dashboard.recent_tasks[0].title == "Touched"

    async def test_created_tasks_count_as_recent(
        self, db: AsyncSession, lead, make_task
    ) -> None:
        await make_task(lead, title="Mine")
        dashboard = await user_stats_service.dashboard(db, user_id=lead.id, current_user=lead)
        assert [task.title for task in dashboard.recent_tasks] == ["Mine"]
        assert sum(dashboard.tasks_by_status.values()) == 0

    async def test_only_self_or_ceo(self, db: AsyncSession, ceo, employee, employee2) -> None:
        with pytest.raises(PermissionDeniedException):
            await user_stats_service.dashboard(
                db, user_id=employee.id, current_user=employee2
            )
        dashboard = await user_stats_service.dashboard(
            db, user_id=employee.id, current_user=ceo
        )
        assert dashboard.overdue_tasks == 0


class TestDashboardRoutes:
    async def test_my_dashboard(self, client: AsyncClient, employee) -> None:
        response = await client.get("/api/v1/users/me/dashboard", headers=auth_headers(employee))
        assert response.status_code == 200
        body = response.json()
        assert body["tasks_due_today"] == 0
        assert body["recent_tasks"] == []
        assert body["stats"]["tasks_completed"] == 0

    async def test_someone_elses_dashboard(
        self, client: AsyncClient, employee, employee2
    ) -> None:
        response = await client.get(
            f"/api/v1/users/{employee.id}/dashboard", headers=auth_headers(employee2)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "PERMISSION_DENIED"
