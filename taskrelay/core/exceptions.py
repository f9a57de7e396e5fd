"""
Domain exceptions and global exception handlers for TaskRelay.

Every engine failure is one of four kinds (not found, invalid state,
permission denied, validation). Each concrete failure carries its own
error_code so clients can tell e.g. AlreadyClaimed from NotClaimable.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ── Base ──────────────────────────────────────────────────────────────────────

class TaskRelayException(Exception):
    """Base exception for all TaskRelay domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "TASKRELAY_ERROR"

    def __init__(
        self,
        detail: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.detail = detail
        super().__init__(detail)


# ── Kinds ─────────────────────────────────────────────────────────────────────

class NotFoundException(TaskRelayException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(detail)


class InvalidStateException(TaskRelayException):
    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_STATE"


class PermissionDeniedException(TaskRelayException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"

    def __init__(self, detail: str = "You do not have permission to perform this action") -> None:
        super().__init__(detail)


class ValidationException(TaskRelayException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"


class UnauthorizedException(TaskRelayException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(detail)


class InvalidTokenException(UnauthorizedException):
    error_code = "INVALID_TOKEN"

    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(detail)


# ── Invalid state ─────────────────────────────────────────────────────────────

class AlreadyClaimedException(InvalidStateException):
    error_code = "ALREADY_CLAIMED"

    def __init__(self) -> None:
        super().__init__("This task has already been claimed")


class NotClaimableException(InvalidStateException):
    error_code = "NOT_CLAIMABLE"

    def __init__(self) -> None:
        super().__init__("This task is not open for claims")


class AlreadyAssignedException(InvalidStateException):
    error_code = "ALREADY_ASSIGNED"

    def __init__(self, detail: str = "User is already assigned to this task") -> None:
        super().__init__(detail)


class NoGroupAssignmentException(InvalidStateException):
    error_code = "NO_GROUP_ASSIGNMENT"

    def __init__(self) -> None:
        super().__init__("This task does not have group assignments")


class ReassignLimitReachedException(InvalidStateException):
    error_code = "REASSIGN_LIMIT_REACHED"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Task has reached maximum reassign limit ({limit})")


class AlreadyHasParentException(InvalidStateException):
    error_code = "ALREADY_HAS_PARENT"

    def __init__(self) -> None:
        super().__init__("Task already has a parent task")


class CycleDetectedException(InvalidStateException):
    error_code = "CYCLE_DETECTED"

    def __init__(self, detail: str = "Cannot create circular dependency") -> None:
        super().__init__(detail)


class SelfLinkException(InvalidStateException):
    error_code = "SELF_LINK"

    def __init__(self) -> None:
        super().__init__("Cannot link a task to itself")


class AlreadyExistsException(InvalidStateException):
    error_code = "ALREADY_EXISTS"


class NotSubtaskException(InvalidStateException):
    error_code = "NOT_A_SUBTASK"

    def __init__(self) -> None:
        super().__init__("Task is not a subtask of this parent")


class NotAssignedException(InvalidStateException):
    error_code = "NOT_ASSIGNED"

    def __init__(self) -> None:
        super().__init__("User is not assigned to this task")


class AlreadyInvitedException(InvalidStateException):
    error_code = "ALREADY_INVITED"

    def __init__(self) -> None:
        super().__init__("User already has a pending invitation")


# ── Permission denied ─────────────────────────────────────────────────────────

class NotGroupMemberException(PermissionDeniedException):
    error_code = "NOT_GROUP_MEMBER"

    def __init__(
        self,
        detail: str = "You must be a member of one of the assigned groups",
    ) -> None:
        super().__init__(detail)


class TargetNotInGroupException(PermissionDeniedException):
    error_code = "TARGET_NOT_IN_GROUP"

    def __init__(self) -> None:
        super().__init__("Target user must be a member of one of the assigned groups")


class DepartmentMismatchException(PermissionDeniedException):
    error_code = "DEPARTMENT_MISMATCH"

    def __init__(self) -> None:
        super().__init__("User must be in the same department as the task")


class DelegationNotAllowedException(PermissionDeniedException):
    error_code = "DELEGATION_NOT_ALLOWED"

    def __init__(self, source_role: str, target_role: str) -> None:
        super().__init__(f"A {source_role} cannot delegate work to a {target_role}")


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "detail": detail,
        },
    )


async def taskrelay_exception_handler(
    request: Request, exc: TaskRelayException
) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.error_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "VALIDATION_ERROR",
            "detail": "Request validation failed",
            "errors": errors,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected internal server error occurred",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(TaskRelayException, taskrelay_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
