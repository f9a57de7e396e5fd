"""
Group management routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from taskrelay.core.constants import Department
from taskrelay.core.dependencies import CurrentUser, DBSession
from taskrelay.schemas.group import (
    GroupCreate,
    GroupMemberAdd,
    GroupMemberRead,
    GroupRead,
    GroupReadWithMembers,
)
from taskrelay.schemas.pagination import PaginatedResponse
from taskrelay.services.group_service import group_service

router = APIRouter(prefix="/groups", tags=["Groups"])


@router.post(
    "/",
    response_model=GroupReadWithMembers,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new group",
)
async def create_group(
    group_in: GroupCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> GroupReadWithMembers:
    group = await group_service.create_group(
        db, group_in=group_in, current_user=current_user
    )
    return GroupReadWithMembers.model_validate(group)


@router.get(
    "/",
    response_model=PaginatedResponse[GroupRead],
    summary="List active groups",
)
async def list_groups(
    current_user: CurrentUser,
    db: DBSession,
    department: Department | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[GroupRead]:
    groups, total = await group_service.list_groups(
        db, department=department, page=page, size=size
    )
    return PaginatedResponse(
        items=[GroupRead.model_validate(g) for g in groups],
        total=total,
        page=page,
        size=size,
    )


@router.get(
    "/{group_id}",
    response_model=GroupReadWithMembers,
    summary="Get group details with members",
)
async def get_group(
    group_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> GroupReadWithMembers:
    group = await group_service.get_group(db, group_id=group_id)
    return GroupReadWithMembers.model_validate(group)


@router.post(
    "/{group_id}/members",
    response_model=GroupMemberRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member to the group",
)
async def add_member(
    group_id: uuid.UUID,
    member_in: GroupMemberAdd,
    current_user: CurrentUser,
    db: DBSession,
) -> GroupMemberRead:
    member = await group_service.add_member(
        db, group_id=group_id, member_in=member_in, current_user=current_user
    )
    return GroupMemberRead.model_validate(member)


@router.delete(
    "/{group_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member from the group",
)
async def remove_member(
    group_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await group_service.remove_member(
        db, group_id=group_id, user_id=user_id, current_user=current_user
    )
