"""
HTTP endpoint tests.
Covers: authentication, error payloads, task, assignment, subtask and group routes.
"""
from __future__ import annotations

import uuid
from typing import Any

import pytest
from httpx import AsyncClient

from tests.conftest import auth_headers, days_from_now

pytestmark = pytest.mark.asyncio


async def _create_task(
    client: AsyncClient,
    headers: dict,
    title: str = "Test Task",
    **kwargs: Any,
) -> dict:
    payload = {
        "title": title,
        "description": "A test task description",
        "priority": "Medium",
        "due_date": days_from_now(2).isoformat(),
        **kwargs,
    }
    response = await client.post("/api/v1/tasks/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/tasks/")
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    async def test_garbage_token(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/users/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestTaskRoutes:
    async def test_create_and_get(self, client: AsyncClient, lead) -> None:
        headers = auth_headers(lead)
        task = await _create_task(
            client, headers, title="Release", tags=["api"], checklist=[{"text": "Write notes"}]
        )
        assert task["status"] == "Open"
        assert task["department"] == lead.department
        assert task["progress_percentage"] == 0
        assert task["checklist"][0]["text"] == "Write notes"

        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Release"

    async def test_employee_cannot_create(self, client: AsyncClient, employee) -> None:
        response = await client.post(
            "/api/v1/tasks/",
            json={"title": "Nope", "due_date": days_from_now(1).isoformat()},
            headers=auth_headers(employee),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "PERMISSION_DENIED"

    async def test_validation_error_shape(self, client: AsyncClient, lead) -> None:
        response = await client.post(
            "/api/v1/tasks/", json={"title": ""}, headers=auth_headers(lead)
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["errors"]

    async def test_unknown_task(self, client: AsyncClient, lead) -> None:
        response = await client.get(f"/api/v1/tasks/{uuid.uuid4()}", headers=auth_headers(lead))
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    async def test_update_and_activity(self, client: AsyncClient, lead) -> None:
        headers = auth_headers(lead)
        task = await _create_task(client, headers)

        response = await client.put(
            f"/api/v1/tasks/{task['id']}",
            json={"status": "In Progress"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "In Progress"

        response = await client.get(f"/api/v1/tasks/{task['id']}/activity", headers=headers)
        items = response.json()["items"]
        assert [i["type"] for i in items] == ["status_changed", "created"]

    async def test_archive_and_delete(self, client: AsyncClient, lead) -> None:
        headers = auth_headers(lead)
        task = await _create_task(client, headers)

        response = await client.put(f"/api/v1/tasks/{task['id']}/archive", headers=headers)
        assert response.status_code == 200
        assert response.json()["is_archived"] is True

        response = await client.get("/api/v1/tasks/", headers=headers)
        assert task["id"] not in [t["id"] for t in response.json()["items"]]

        response = await client.delete(f"/api/v1/tasks/{task['id']}", headers=headers)
        assert response.status_code == 204
        response = await client.get(f"/api/v1/tasks/{task['id']}", headers=headers)
        assert response.status_code == 404


class TestClaimFlow:
    async def test_feed_then_claim(
        self, client: AsyncClient, lead, employee, employee2
    ) -> None:
        task = await _create_task(client, auth_headers(lead), is_open_for_claims=True)

        response = await client.get("/api/v1/tasks/feed", headers=auth_headers(employee))
        assert response.status_code == 200
        assert task["id"] in [t["id"] for t in response.json()["items"]]

        response = await client.post(
            f"/api/v1/tasks/{task['id']}/claim", headers=auth_headers(employee)
        )
        assert response.status_code == 200
        assert response.json()["claimed_by"] == str(employee.id)

        response = await client.post(
            f"/api/v1/tasks/{task['id']}/claim", headers=auth_headers(employee2)
        )
        assert response.status_code == 409
        assert response.json()["error"] == "ALREADY_CLAIMED"

        response = await client.get("/api/v1/tasks/feed", headers=auth_headers(employee2))
        assert task["id"] not in [t["id"] for t in response.json()["items"]]

    async def test_reassign_limit_over_http(
        self, client: AsyncClient, lead, employee, employee2, make_user
    ) -> None:
        third = await make_user()
        headers = auth_headers(lead)
        task = await _create_task(client, headers)

        for target in (employee, employee2, third):
            response = await client.put(
                f"/api/v1/tasks/{task['id']}/reassign",
                json={"user_id": str(target.id), "reason": "rotation"},
                headers=headers,
            )
            assert response.status_code == 200, response.text

        assert response.json()["reassigns_remaining"] == 0

        response = await client.put(
            f"/api/v1/tasks/{task['id']}/reassign",
            json={"user_id": str(employee.id)},
            headers=headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "REASSIGN_LIMIT_REACHED"


class TestSubtaskRoutes:
    async def test_subtask_and_checklist(self, client: AsyncClient, lead) -> None:
        headers = auth_headers(lead)
        parent = await _create_task(client, headers, title="Parent")

        response = await client.post(
            f"/api/v1/tasks/{parent['id']}/subtasks", json={"title": "Child"}, headers=headers
        )
        assert response.status_code == 201
        child = response.json()
        assert child["parent_task_id"] == parent["id"]

        response = await client.post(
            f"/api/v1/tasks/{child['id']}/checklist", json={"text": "Do it"}, headers=headers
        )
        assert response.status_code == 201
        item_id = response.json()["checklist"][0]["id"]

        response = await client.put(
            f"/api/v1/tasks/{child['id']}/checklist/{item_id}/toggle", headers=headers
        )
        assert response.json()["progress_percentage"] == 100

        response = await client.get(f"/api/v1/tasks/{parent['id']}", headers=headers)
        assert response.json()["progress_percentage"] == 100

        response = await client.get(f"/api/v1/tasks/{parent['id']}/subtasks", headers=headers)
        assert [t["id"] for t in response.json()] == [child["id"]]

    async def test_link_and_unlink(self, client: AsyncClient, lead) -> None:
        headers = auth_headers(lead)
        parent = await _create_task(client, headers, title="Parent")
        other = await _create_task(client, headers, title="Other")

        response = await client.get(
            f"/api/v1/tasks/{parent['id']}/available-subtasks", headers=headers
        )
        assert other["id"] in [t["id"] for t in response.json()]

        response = await client.post(
            f"/api/v1/tasks/{parent['id']}/subtasks/link",
            json={"subtask_id": other["id"]},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["parent_task_id"] == parent["id"]

        response = await client.post(
            f"/api/v1/tasks/{other['id']}/subtasks/link",
            json={"subtask_id": parent["id"]},
            headers=headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "CYCLE_DETECTED"

        response = await client.delete(
            f"/api/v1/tasks/{parent['id']}/subtasks/{other['id']}", headers=headers
        )
        assert response.status_code == 200
        assert response.json()["parent_task_id"] is None


class TestUserAndGroupRoutes:
    async def test_me(self, client: AsyncClient, employee) -> None:
        response = await client.get("/api/v1/users/me", headers=auth_headers(employee))
        assert response.status_code == 200
        assert response.json()["id"] == str(employee.id)

        response = await client.get("/api/v1/users/me/stats", headers=auth_headers(employee))
        assert response.json()["tasks_completed"] == 0

    async def test_only_ceo_adds_users(self, client: AsyncClient, ceo, lead) -> None:
        payload = {
            "email": "new.hire@example.com",
            "username": "new_hire",
            "full_name": "New Hire",
            "role": "Employee",
            "department": "Engineering",
        }
        response = await client.post("/api/v1/users/", json=payload, headers=auth_headers(lead))
        assert response.status_code == 403

        response = await client.post("/api/v1/users/", json=payload, headers=auth_headers(ceo))
        assert response.status_code == 201
        assert response.json()["username"] == "new_hire"

        response = await client.post("/api/v1/users/", json=payload, headers=auth_headers(ceo))
        assert response.status_code == 409
        assert response.json()["error"] == "ALREADY_EXISTS"

    async def test_group_lifecycle(
        self, client: AsyncClient, lead, employee, employee2
    ) -> None:
        headers = auth_headers(lead)
        response = await client.post(
            "/api/v1/groups/",
            json={
                "name": "Platform",
                "department": "Engineering",
                "member_ids": [str(employee.id)],
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text
        group = response.json()
        assert group["leader_id"] == str(lead.id)

        response = await client.post(
            f"/api/v1/groups/{group['id']}/members",
            json={"user_id": str(employee2.id)},
            headers=headers,
        )
        assert response.status_code == 201

        response = await client.get(f"/api/v1/groups/{group['id']}", headers=headers)
        member_ids = {m["user_id"] for m in response.json()["members"]}
        assert {str(employee.id), str(employee2.id)} <= member_ids

        response = await client.delete(
            f"/api/v1/groups/{group['id']}/members/{employee2.id}",
            headers=auth_headers(employee2),
        )
        assert response.status_code == 204
