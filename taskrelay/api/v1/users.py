"""
User directory routes.
GET /users/me, /users/me/stats and the dashboards, CEO-only provisioning on
POST /users/
"""
from __future__ import annotations

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from taskrelay.core.constants import Department, Role
from taskrelay.core.dependencies import CEOUser, CurrentUser, DBSession
from taskrelay.core.exceptions import AlreadyExistsException, NotFoundException
from taskrelay.crud.user import crud_user
from taskrelay.schemas.dashboard import Dashboard
from taskrelay.schemas.pagination import PaginatedResponse
from taskrelay.schemas.user import UserCreate, UserFilter, UserRead, UserStats
from taskrelay.services.user_stats_service import user_stats_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _user_filter_params(
    department: Department | None = Query(default=None),
    role: Role | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> UserFilter:
    return UserFilter(
        department=department, role=role, search=search, page=page, size=size
    )


@router.get("/me", response_model=UserRead, summary="Get current user profile")
async def get_me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)


@router.get("/me/stats", response_model=UserStats, summary="Get my completion statistics")
async def get_my_stats(current_user: CurrentUser) -> UserStats:
    return UserStats.model_validate(current_user)


@router.get("/me/dashboard", response_model=Dashboard, summary="Get my dashboard")
async def get_my_dashboard(current_user: CurrentUser, db: DBSession) -> Dashboard:
    return await user_stats_service.dashboard(
        db, user_id=current_user.id, current_user=current_user
    )


@router.post(
    "/",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a user to the directory (CEO only)",
)
async def create_user(
    user_in: UserCreate,
    _ceo: CEOUser,
    db: DBSession,
) -> UserRead:
    if await crud_user.get_by_email(db, user_in.email):
        raise AlreadyExistsException("Email already registered")
    if await crud_user.get_by_username(db, user_in.username):
        raise AlreadyExistsException("Username already taken")

    user = await crud_user.create(db, obj_in=user_in)
    logger.info("User %s (%s, %s) created", user.id, user.role, user.department)
    return UserRead.model_validate(user)


@router.get(
    "/",
    response_model=PaginatedResponse[UserRead],
    summary="List active users",
)
async def list_users(
    current_user: CurrentUser,
    db: DBSession,
    filters: Annotated[UserFilter, Depends(_user_filter_params)],
) -> PaginatedResponse[UserRead]:
    users, total = await crud_user.list_with_filters(db, filters=filters)
    return PaginatedResponse(
        items=[UserRead.model_validate(u) for u in users],
        total=total,
        page=filters.page,
        size=filters.size,
    )


@router.get(
    "/{user_id}/dashboard",
    response_model=Dashboard,
    summary="Get a user's dashboard (self or CEO)",
)
async def get_user_dashboard(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> Dashboard:
    return await user_stats_service.dashboard(db, user_id=user_id, current_user=current_user)

@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get user by ID",
)
async def get_user(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> UserRead:
    user = await crud_user.get(db, user_id)
    if user is None:
        raise NotFoundException("User", str(user_id))
    return UserRead.model_validate(user)
