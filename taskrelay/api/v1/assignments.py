"""
Assignment routes.
Claiming, group self-assignment, reassignment, invitations and candidate
listings.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.schemas.task import (
    AssignUserRequest,
    InvitationResponseRequest,
    InviteRequest,
    ReassignRequest,
    TaskRead,
    UnassignRequest,
)
from taskrelay.schemas.user import AssigneeCandidate
from taskrelay.services.assignment_service import assignment_service

router = APIRouter(prefix="/tasks", tags=["Assignments"])


@router.post(
    "/{task_id}/claim",
    response_model=TaskRead,
    summary="Claim an open task",
)
async def claim_task(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.claim(db, task_id=task_id, current_user=current_user)
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}/assign-to-me",
    response_model=TaskRead,
    summary="Take a group-assigned task",
)
async def assign_to_me(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.self_assign(
        db, task_id=task_id, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}/assign-user",
    response_model=TaskRead,
    summary="Add a fellow group member to a group-assigned task",
)
async def assign_user(
    task_id: uuid.UUID,
    body: AssignUserRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.assign_other(
        db, task_id=task_id, target_user_id=body.user_id, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.put(
    "/{task_id}/reassign",
    response_model=TaskRead,
    summary="Hand a task over to another user",
)
async def reassign_task(
    task_id: uuid.UUID,
    body: ReassignRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.reassign(
        db,
        task_id=task_id,
        target_user_id=body.user_id,
        current_user=current_user,
        reason=body.reason,
    )
    return TaskRead.model_validate(task)


@router.post(
    "/{task_id}/unassign",
    response_model=TaskRead,
    summary="Remove an assignee from a task",
)
async def unassign_user(
    task_id: uuid.UUID,
    body: UnassignRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.unassign(
        db, task_id=task_id, target_user_id=body.user_id, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.post(
    "/{task_id}/invite",
    response_model=TaskRead,
    summary="Invite a user to help with a task",
)
async def invite_user(
    task_id: uuid.UUID,
    body: InviteRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.invite(
        db, task_id=task_id, target_user_id=body.user_id, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.post(
    "/{task_id}/invitation-response",
    response_model=TaskRead,
    summary="Accept or decline my pending invitation",
)
async def respond_to_invitation(
    task_id: uuid.UUID,
    body: InvitationResponseRequest,
    current_user: CurrentUser,
    db: DBSession,
) -> TaskRead:
    task = await assignment_service.respond_to_invitation(
        db, task_id=task_id, accept=body.accept, current_user=current_user
    )
    return TaskRead.model_validate(task)


@router.get(
    "/{task_id}/available-assignees",
    response_model=list[AssigneeCandidate],
    summary="Users who could be added to the task",
)
async def available_assignees(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    delegable_only: bool = Query(default=False),
) -> list[AssigneeCandidate]:
    return await assignment_service.available_assignees(
        db, task_id=task_id, current_user=current_user, delegable_only=delegable_only
    )


@router.get(
    "/{task_id}/available-group-members",
    response_model=list[AssigneeCandidate],
    summary="Members of the task's groups not yet assigned",
)
async def available_group_members(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
    delegable_only: bool = Query(default=False),
) -> list[AssigneeCandidate]:
    return await assignment_service.available_group_members(
        db, task_id=task_id, current_user=current_user, delegable_only=delegable_only
    )
