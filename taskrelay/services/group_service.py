"""
Group management service.
Handles group creation, member addition and removal.
"""
from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.exceptions import (
    AlreadyExistsException,
    NotFoundException,
    PermissionDeniedException,
)
from taskrelay.crud.group import crud_group
from taskrelay.crud.user import crud_user
from taskrelay.models.group import Group, GroupMember
from taskrelay.models.user import User
from taskrelay.schemas.group import GroupCreate, GroupMemberAdd
from taskrelay.schemas.pagination import page_offset
from taskrelay.services.notification_service import notification_service
from taskrelay.services.permissions import SUPERUSER_ROLE
from taskrelay.services.role_hierarchy import has_creation_rights


class GroupService:

    async def create_group(
        self,
        db: AsyncSession,
        *,
        group_in: GroupCreate,
        current_user: User,
    ) -> Group:
        if not has_creation_rights(current_user.role):
            raise PermissionDeniedException(
                f"A {current_user.role} cannot create groups"
            )

        leader_id = group_in.leader_id or current_user.id
        member_ids = list(dict.fromkeys([leader_id, *group_in.member_ids]))
        for user_id in member_ids:
            await self._get_user(db, user_id)

        group = await crud_group.create_group(
            db, obj_in=group_in, leader_id=leader_id, created_by=current_user.id
        )
        for user_id in member_ids:
            await crud_group.add_member(db, group_id=group.id, user_id=user_id)

        return await self.get_group(db, group_id=group.id)

    async def get_group(self, db: AsyncSession, *, group_id: uuid.UUID) -> Group:
        group = await crud_group.get(db, group_id, refresh=True)
        if group is None:
            raise NotFoundException("Group", str(group_id))
        return group

    async def list_groups(
        self,
        db: AsyncSession,
        *,
        department: str | None = None,
        page: int = 1,
        size: int = 20,
    ) -> tuple[list[Group], int]:
        return await crud_group.list_groups(
            db, department=department, skip=page_offset(page, size), limit=size
        )

    async def add_member(
        self,
        db: AsyncSession,
        *,
        group_id: uuid.UUID,
        member_in: GroupMemberAdd,
        current_user: User,
    ) -> GroupMember:
        group = await self.get_group(db, group_id=group_id)
        self._assert_can_manage(group, current_user)

        await self._get_user(db, member_in.user_id)
        existing = await crud_group.get_member(
            db, group_id=group_id, user_id=member_in.user_id
        )
        if existing is not None:
            raise AlreadyExistsException("User is already a member of this group")

        member = await crud_group.add_member(
            db, group_id=group_id, user_id=member_in.user_id
        )
        await notification_service.dispatch(
            db,
            recipient_id=member_in.user_id,
            sender_id=current_user.id,
            type="group_added",
            message=f"added you to group: {group.name}",
        )
        await db.refresh(member, attribute_names=["user"])
        return member

    async def remove_member(
        self,
        db: AsyncSession,
        *,
        group_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Members may leave on their own; removing others needs group authority."""
        group = await self.get_group(db, group_id=group_id)
        if user_id != current_user.id:
            self._assert_can_manage(group, current_user)

        removed = await crud_group.remove_member(db, group_id=group_id, user_id=user_id)
        if removed is None:
            raise NotFoundException("GroupMember")

    # ── Private helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _assert_can_manage(group: Group, user: User) -> None:
        if user.role == SUPERUSER_ROLE or user.id in (group.leader_id, group.created_by):
            return
        raise PermissionDeniedException(
            "Only the group leader or creator can manage its members"
        )

    @staticmethod
    async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await crud_user.get(db, user_id)
        if user is None or not user.is_active:
            raise NotFoundException("User", str(user_id))
        return user


group_service = GroupService()
