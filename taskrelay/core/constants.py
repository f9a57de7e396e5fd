"""
Closed vocabularies shared by models, schemas and services.
The Literal aliases are used by Pydantic; the tuples feed SQLAlchemy Enum columns.
"""
from __future__ import annotations

from typing import Literal, get_args

Role = Literal[
    "CEO",
    "Project Manager",
    "Team Lead",
    "Employee",
    "Intern",
    "Contractor",
]

Department = Literal[
    "Engineering",
    "Design",
    "Marketing",
    "Sales",
    "HR",
    "Finance",
    "Operations",
    "Customer Support",
]

TaskStatus = Literal[
    "Open",
    "In Progress",
    "Under Review",
    "Completed",
    "Blocked",
    "Cancelled",
    "Pending",
]

TaskPriority = Literal["Low", "Medium", "High", "Urgent"]

InvitationStatus = Literal["Pending", "Accepted", "Declined"]

ActivityType = Literal[
    "created",
    "status_changed",
    "priority_changed",
    "assigned",
    "unassigned",
    "reassigned",
    "self_assigned",
    "due_date_changed",
    "title_changed",
    "description_changed",
    "checklist_added",
    "checklist_completed",
    "checklist_uncompleted",
    "checklist_deleted",
    "subtask_added",
    "subtask_linked",
    "subtask_unlinked",
    "comment_added",
    "attachment_added",
    "attachment_deleted",
    "tag_added",
    "tag_removed",
    "invited",
    "invitation_accepted",
    "invitation_declined",
]

NotificationType = Literal[
    "task_assigned",
    "task_reassigned",
    "task_claimed",
    "task_comment",
    "task_completed",
    "group_added",
    "task_invitation",
]

ROLES: tuple[str, ...] = get_args(Role)
DEPARTMENTS: tuple[str, ...] = get_args(Department)
TASK_STATUSES: tuple[str, ...] = get_args(TaskStatus)
TASK_PRIORITIES: tuple[str, ...] = get_args(TaskPriority)
ACTIVITY_TYPES: tuple[str, ...] = get_args(ActivityType)
NOTIFICATION_TYPES: tuple[str, ...] = get_args(NotificationType)
INVITATION_STATUSES: tuple[str, ...] = get_args(InvitationStatus)

# Statuses a freshly created task may start in.
INITIAL_STATUSES: tuple[str, ...] = ("Open", "Pending")

STATUS_COMPLETED = "Completed"
STATUS_IN_PROGRESS = "In Progress"
# Tasks in these statuses never count as overdue and never show in the claim feed.
CLOSED_STATUSES: tuple[str, ...] = ("Completed", "Cancelled")

INVITATION_PENDING = "Pending"
