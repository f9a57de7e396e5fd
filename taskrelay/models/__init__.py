"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from taskrelay.models.user import User  # noqa: F401
from taskrelay.models.group import Group, GroupMember  # noqa: F401
from taskrelay.models.task import (  # noqa: F401
    ChecklistItem,
    Task,
    TaskAssignee,
    TaskGroup,
    TaskInvitation,
    TaskReassignment,
)
from taskrelay.models.activity import TaskActivity  # noqa: F401
from taskrelay.models.comment import Comment  # noqa: F401
from taskrelay.models.attachment import Attachment  # noqa: F401
from taskrelay.models.notification import Notification  # noqa: F401
