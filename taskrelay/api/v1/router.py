"""
Aggregates all v1 API routers into a single APIRouter.
"""
from __future__ import annotations

from fastapi import APIRouter

from taskrelay.api.v1 import (
    activity,
    assignments,
    attachments,
    comments,
    groups,
    notifications,
    subtasks,
    tasks,
    users,
)

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(groups.router)
api_router.include_router(tasks.router)
api_router.include_router(assignments.router)
api_router.include_router(subtasks.router)
api_router.include_router(activity.router)
api_router.include_router(comments.router)
api_router.include_router(attachments.router)
api_router.include_router(notifications.router)
