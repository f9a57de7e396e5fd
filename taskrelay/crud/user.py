"""
User CRUD operations.
Extends CRUDBase with directory lookups and assignee-candidate queries.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.base import CRUDBase
from taskrelay.models.group import GroupMember
from taskrelay.models.user import User
from taskrelay.schemas.pagination import page_offset
from taskrelay.schemas.user import UserCreate, UserFilter


class CRUDUser(CRUDBase[User, UserCreate, UserCreate]):

    async def get_by_email(self, db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_by_username(self, db: AsyncSession, username: str) -> User | None:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list_with_filters(
        self,
        db: AsyncSession,
        *,
        filters: UserFilter,
    ) -> tuple[list[User], int]:
        conditions = [User.is_active.is_(True)]
        if filters.department is not None:
            conditions.append(User.department == filters.department)
        if filters.role is not None:
            conditions.append(User.role == filters.role)
        if filters.search:
            search_term = f"%{filters.search}%"
            conditions.append(
                or_(
                    User.username.ilike(search_term),
                    User.full_name.ilike(search_term),
                    User.email.ilike(search_term),
                )
            )

        return await self.paginate(
            db,
            *conditions,
            order_by=(User.username.asc(),),
            skip=page_offset(filters.page, filters.size),
            limit=filters.size,
        )

    async def list_group_members(
        self,
        db: AsyncSession,
        *,
        group_ids: Iterable[uuid.UUID],
        exclude_ids: Iterable[uuid.UUID] = (),
        limit: int = 50,
    ) -> list[User]:
        """Active users belonging to at least one of ``group_ids``."""
        member_ids = select(GroupMember.user_id).where(GroupMember.group_id.in_(list(group_ids)))
        query = select(User).where(User.id.in_(member_ids), User.is_active.is_(True))
        excluded = list(exclude_ids)
        if excluded:
            query = query.where(User.id.not_in(excluded))
        result = await db.execute(query.order_by(User.username.asc()).limit(limit))
        return list(result.scalars().all())

    async def list_department_members(
        self,
        db: AsyncSession,
        *,
        department: str,
        exclude_ids: Iterable[uuid.UUID] = (),
        limit: int = 50,
    ) -> list[User]:
        query = select(User).where(User.department == department, User.is_active.is_(True))
        excluded = list(exclude_ids)
        if excluded:
            query = query.where(User.id.not_in(excluded))
        result = await db.execute(query.order_by(User.username.asc()).limit(limit))
        return list(result.scalars().all())


crud_user = CRUDUser(User)
