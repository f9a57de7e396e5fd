"""
Group CRUD operations.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.crud.base import CRUDBase
from taskrelay.models.group import Group, GroupMember
from taskrelay.schemas.group import GroupCreate


class CRUDGroup(CRUDBase[Group, GroupCreate, GroupCreate]):

    async def create_group(
        self,
        db: AsyncSession,
        *,
        obj_in: GroupCreate,
        leader_id: uuid.UUID,
        created_by: uuid.UUID,
    ) -> Group:
        group = Group(
            name=obj_in.name,
            description=obj_in.description,
            department=obj_in.department,
            leader_id=leader_id,
            created_by=created_by,
        )
        db.add(group)
        await db.flush()
        await db.refresh(group)
        return group

    async def get_many(
        self, db: AsyncSession, *, group_ids: Iterable[uuid.UUID]
    ) -> list[Group]:
        result = await db.execute(select(Group).where(Group.id.in_(list(group_ids))))
        return list(result.scalars().all())

    async def list_groups(
        self,
        db: AsyncSession,
        *,
        department: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[Group], int]:
        conditions = [Group.is_active.is_(True)]
        if department is not None:
            conditions.append(Group.department == department)
        return await self.paginate(
            db, *conditions, order_by=(Group.name.asc(),), skip=skip, limit=limit
        )

    async def get_member(
        self, db: AsyncSession, *, group_id: uuid.UUID, user_id: uuid.UUID
    ) -> GroupMember | None:
        result = await db.execute(
            select(GroupMember).where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_member(
        self,
        db: AsyncSession,
        *,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> GroupMember:
        member = GroupMember(group_id=group_id, user_id=user_id)
        db.add(member)
        await db.flush()
        return member

    async def remove_member(
        self, db: AsyncSession, *, group_id: uuid.UUID, user_id: uuid.UUID
    ) -> GroupMember | None:
        member = await self.get_member(db, group_id=group_id, user_id=user_id)
        if member is None:
            return None
        await db.delete(member)
        await db.flush()
        return member

    async def is_member_of_any(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        group_ids: Iterable[uuid.UUID],
    ) -> bool:
        """True if the user belongs to at least one of the given groups."""
        ids = list(group_ids)
        if not ids:
            return False
        result = await db.execute(
            select(func.count())
            .select_from(GroupMember)
            .where(GroupMember.user_id == user_id, GroupMember.group_id.in_(ids))
        )
        return result.scalar_one() > 0

    async def get_member_ids(
        self, db: AsyncSession, *, group_ids: Iterable[uuid.UUID]
    ) -> set[uuid.UUID]:
        ids = list(group_ids)
        if not ids:
            return set()
        result = await db.execute(
            select(GroupMember.user_id).where(GroupMember.group_id.in_(ids)).distinct()
        )
        return {row[0] for row in result.all()}


crud_group = CRUDGroup(Group)
