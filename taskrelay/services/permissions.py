"""
Task-level access rules shared by the services.
The CEO may do anything; otherwise editing needs a stake in the task and
archiving or deleting needs authorship.
"""
from __future__ import annotations

from taskrelay.core.exceptions import PermissionDeniedException
from taskrelay.models.task import Task
from taskrelay.models.user import User

SUPERUSER_ROLE = "CEO"


def assert_can_modify(task: Task, user: User) -> None:
    if user.role == SUPERUSER_ROLE:
        return
    if task.created_by == user.id or task.is_assigned(user.id):
        return
    raise PermissionDeniedException(
        "Only the task creator or an assignee can modify this task"
    )


def assert_can_manage(task: Task, user: User) -> None:
    if user.role == SUPERUSER_ROLE or task.created_by == user.id:
        return
    raise PermissionDeniedException(
        "Only the task creator can archive, delete or unassign others from this task"
    )
