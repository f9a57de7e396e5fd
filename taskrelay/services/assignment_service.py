"""
Assignment engine: claim, self-assign, assign-by-delegate, reassign, unassign
and invitations.

Each operation re-reads its task under a row lock, validates, mutates, writes
exactly one activity entry and then notifies. Group-based assignment adds to
the assignee set; reassignment replaces it and is capped per task.

Role delegation is only advisory here: candidate listings are annotated and
optionally filtered with it, but commits check department and group
membership only, unless ENFORCE_DELEGATION_ON_REASSIGN is set.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.config import settings
from taskrelay.core.exceptions import (
    AlreadyAssignedException,
    AlreadyClaimedException,
    AlreadyInvitedException,
    DelegationNotAllowedException,
    DepartmentMismatchException,
    NoGroupAssignmentException,
    NotAssignedException,
    NotClaimableException,
    NotFoundException,
    NotGroupMemberException,
    ReassignLimitReachedException,
    TargetNotInGroupException,
    ValidationException,
)
from taskrelay.crud.group import crud_group
from taskrelay.crud.task import crud_task
from taskrelay.crud.user import crud_user
from taskrelay.db.base import utcnow
from taskrelay.models.task import Task, TaskAssignee, TaskInvitation, TaskReassignment
from taskrelay.models.user import User
from taskrelay.schemas.user import AssigneeCandidate, UserReadPublic
from taskrelay.services import role_hierarchy
from taskrelay.services.activity_service import activity_service
from taskrelay.services.notification_service import notification_service
from taskrelay.services.permissions import assert_can_manage, assert_can_modify

logger = logging.getLogger(__name__)


def display_name(user: User) -> str:
    return user.full_name or user.username


class AssignmentService:

    async def claim(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        """One-shot take-over of a task that was opened for claims."""
        task = await self._get_locked(db, task_id)
        if not task.is_open_for_claims:
            raise NotClaimableException()
        if task.is_claimed:
            raise AlreadyClaimedException()

        task.is_claimed = True
        task.claimed_by = current_user.id
        task.claimed_at = utcnow()
        if not task.is_assigned(current_user.id):
            task.assignee_links.append(TaskAssignee(user_id=current_user.id))
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="assigned",
            user_id=current_user.id,
            description="Claimed the task",
            meta={"assigned_user": str(current_user.id), "claimed": True},
        )
        logger.info("Task %s claimed by %s", task.id, current_user.id)

        if task.created_by != current_user.id:
            await notification_service.dispatch(
                db,
                recipient_id=task.created_by,
                sender_id=current_user.id,
                type="task_claimed",
                task_id=task.id,
                message=f"claimed your task: {task.title}",
            )
        return await self._reload(db, task.id)

    async def self_assign(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        task = await self._get_locked(db, task_id)
        if not task.group_links:
            raise NoGroupAssignmentException()
        if not await crud_group.is_member_of_any(
            db, user_id=current_user.id, group_ids=task.assigned_groups
        ):
            raise NotGroupMemberException(
                "You must be a member of one of the assigned groups to take this task"
            )
        if task.is_assigned(current_user.id):
            raise AlreadyAssignedException("You are already assigned to this task")

        task.assignee_links.append(TaskAssignee(user_id=current_user.id))
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="self_assigned",
            user_id=current_user.id,
            description="Assigned themselves to the task",
            meta={},
        )
        logger.info("User %s self-assigned task %s", current_user.id, task.id)

        if task.created_by != current_user.id:
            await notification_service.dispatch(
                db,
                recipient_id=task.created_by,
                sender_id=current_user.id,
                type="task_assigned",
                task_id=task.id,
                message=f"assigned themselves to task: {task.title}",
            )
        return await self._reload(db, task.id)

    async def assign_other(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        target_user_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        """Add a fellow member of one of the task's groups as an assignee."""
        task = await self._get_locked(db, task_id)
        target = await self._get_user(db, target_user_id)

        if not task.group_links:
            raise NoGroupAssignmentException()
        group_ids = task.assigned_groups
        if not await crud_group.is_member_of_any(
            db, user_id=current_user.id, group_ids=group_ids
        ):
            raise NotGroupMemberException(
                "You must be a member of one of the assigned groups to assign this task"
            )
        if not await crud_group.is_member_of_any(db, user_id=target.id, group_ids=group_ids):
            raise TargetNotInGroupException()
        if task.is_assigned(target.id):
            raise AlreadyAssignedException()

        task.assignee_links.append(TaskAssignee(user_id=target.id))
        await db.flush()

        name = display_name(target)
        await activity_service.append(
            db,
            task_id=task.id,
            type="assigned",
            user_id=current_user.id,
            description=f"Assigned {name} to the task",
            meta={"assigned_user": str(target.id)},
        )
        logger.info("User %s assigned %s to task %s", current_user.id, target.id, task.id)

        await notification_service.dispatch(
            db,
            recipient_id=target.id,
            sender_id=current_user.id,
            type="task_assigned",
            task_id=task.id,
            message=f"assigned you to task: {task.title}",
        )
        if task.created_by != current_user.id:
            await notification_service.dispatch(
                db,
                recipient_id=task.created_by,
                sender_id=current_user.id,
                type="task_assigned",
                task_id=task.id,
                message=f"assigned {name} to task: {task.title}",
            )
        return await self._reload(db, task.id)

    async def reassign(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        target_user_id: uuid.UUID,
        current_user: User,
        reason: str = "",
    ) -> Task:
        """
        Replace the whole assignee set with ``target_user_id``.
        Bounded by MAX_REASSIGNMENTS per task; the counter is never reset.
        """
        task = await self._get_locked(db, task_id)
        if task.reassign_count >= settings.MAX_REASSIGNMENTS:
            raise ReassignLimitReachedException(settings.MAX_REASSIGNMENTS)

        target = await self._get_user(db, target_user_id)
        if target.department != task.department:
            raise DepartmentMismatchException()
        if settings.ENFORCE_DELEGATION_ON_REASSIGN and not role_hierarchy.can_delegate(
            current_user.role, target.role
        ):
            raise DelegationNotAllowedException(current_user.role, target.role)
        if task.is_assigned(target.id):
            raise AlreadyAssignedException()

        task.assignee_links = [TaskAssignee(user_id=target.id)]
        task.reassign_history.append(
            TaskReassignment(
                reassigned_by=current_user.id,
                reassigned_to=target.id,
                reason=reason,
            )
        )
        task.reassign_count += 1
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="reassigned",
            user_id=current_user.id,
            description=f"Reassigned task to {display_name(target)}",
            meta={
                "reassigned_to": str(target.id),
                "reason": reason,
                "reassign_count": task.reassign_count,
            },
        )
        logger.info(
            "Task %s reassigned to %s by %s (%d/%d)",
            task.id,
            target.id,
            current_user.id,
            task.reassign_count,
            settings.MAX_REASSIGNMENTS,
        )

        await notification_service.dispatch(
            db,
            recipient_id=target.id,
            sender_id=current_user.id,
            type="task_reassigned",
            task_id=task.id,
            message=f"You have been reassigned to task: {task.title}",
        )
        return await self._reload(db, task.id)

    async def unassign(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        target_user_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        """Remove one assignee. Anyone may drop themselves; dropping others needs authorship."""
        task = await self._get_locked(db, task_id)
        if target_user_id != current_user.id:
            assert_can_manage(task, current_user)

        link = next(
            (a for a in task.assignee_links if a.user_id == target_user_id), None
        )
        if link is None:
            raise NotAssignedException()

        task.assignee_links.remove(link)
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="unassigned",
            user_id=current_user.id,
            description="User unassigned from task",
            meta={"unassigned_user": str(target_user_id)},
        )
        return await self._reload(db, task.id)

    # ── Invitations ───────────────────────────────────────────────────────────

    async def invite(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        target_user_id: uuid.UUID,
        current_user: User,
    ) -> Task:
        """Ask a user to help with the task. A user holds at most one pending invitation."""
        task = await self._get_locked(db, task_id)
        assert_can_modify(task, current_user)
        if target_user_id == current_user.id:
            raise ValidationException("You cannot invite yourself")
        target = await self._get_user(db, target_user_id)
        if task.is_assigned(target.id):
            raise AlreadyAssignedException()
        if task.pending_invitation(target.id) is not None:
            raise AlreadyInvitedException()

        task.invitations.append(TaskInvitation(user_id=target.id, invited_by=current_user.id))
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="invited",
            user_id=current_user.id,
            description=f"Invited {display_name(target)} to the task",
            meta={"invited_user": str(target.id)},
        )
        logger.info("User %s invited %s to task %s", current_user.id, target.id, task.id)

        await notification_service.dispatch(
            db,
            recipient_id=target.id,
            sender_id=current_user.id,
            type="task_invitation",
            task_id=task.id,
            message=f"invited you to help with task: {task.title}",
        )
        return await self._reload(db, task.id)

    async def respond_to_invitation(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        accept: bool,
        current_user: User,
    ) -> Task:
        """Settle the caller's pending invitation; accepting makes them an assignee."""
        task = await self._get_locked(db, task_id)
        invitation = task.pending_invitation(current_user.id)
        if invitation is None:
            raise NotFoundException("Pending invitation")

        invitation.status = "Accepted" if accept else "Declined"
        invitation.responded_at = utcnow()
        if accept and not task.is_assigned(current_user.id):
            task.assignee_links.append(TaskAssignee(user_id=current_user.id))
        await db.flush()

        await activity_service.append(
            db,
            task_id=task.id,
            type="invitation_accepted" if accept else "invitation_declined",
            user_id=current_user.id,
            description="Accepted the invitation" if accept else "Declined the invitation",
            meta={"invitation": str(invitation.id)},
        )
        logger.info(
            "User %s %s invitation to task %s",
            current_user.id,
            invitation.status.lower(),
            task.id,
        )
        return await self._reload(db, task.id)

    # ── Candidate listings ────────────────────────────────────────────────────

    async def available_assignees(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        current_user: User,
        delegable_only: bool = False,
    ) -> list[AssigneeCandidate]:
        """
        Users who could be added to the task: members of its groups, or of
        its department when it has none. Current assignees are excluded.
        """
        task = await self._reload(db, task_id)
        if task.group_links:
            users = await crud_user.list_group_members(
                db,
                group_ids=task.assigned_groups,
                exclude_ids=task.assigned_to,
                limit=settings.CANDIDATE_LIST_LIMIT,
            )
        else:
            users = await crud_user.list_department_members(
                db,
                department=task.department,
                exclude_ids=task.assigned_to,
                limit=settings.CANDIDATE_LIST_LIMIT,
            )
        return self._to_candidates(users, current_user, delegable_only)

    async def available_group_members(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        current_user: User,
        delegable_only: bool = False,
    ) -> list[AssigneeCandidate]:
        task = await self._reload(db, task_id)
        if not task.group_links:
            raise NoGroupAssignmentException()
        users = await crud_user.list_group_members(
            db,
            group_ids=task.assigned_groups,
            exclude_ids=task.assigned_to,
            limit=settings.CANDIDATE_LIST_LIMIT,
        )
        return self._to_candidates(users, current_user, delegable_only)

    # ── Private helpers ───────────────────────────────────────────────────────

    @staticmethod
    def _to_candidates(
        users: list[User], current_user: User, delegable_only: bool
    ) -> list[AssigneeCandidate]:
        if delegable_only:
            users = role_hierarchy.filter_delegable(users, current_user.role)
        return [
            AssigneeCandidate(
                **UserReadPublic.model_validate(user).model_dump(),
                can_delegate=role_hierarchy.can_delegate(current_user.role, user.role),
            )
            for user in users
        ]

    @staticmethod
    async def _get_locked(db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id, for_update=True)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task

    @staticmethod
    async def _reload(db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task

    @staticmethod
    async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await crud_user.get(db, user_id)
        if user is None or not user.is_active:
            raise NotFoundException("User", str(user_id))
        return user


assignment_service = AssignmentService()
