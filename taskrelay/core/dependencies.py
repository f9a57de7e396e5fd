"""
FastAPI dependency injection functions.
Provides get_db, get_current_user, and require_ceo.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from taskrelay.core.exceptions import (
    InvalidTokenException,
    PermissionDeniedException,
    UnauthorizedException,
)
from taskrelay.core.security import decode_access_token
from taskrelay.crud.user import crud_user
from taskrelay.db.session import get_db
from taskrelay.models.user import User

__all__ = ["get_db", "get_current_user", "require_ceo", "DBSession", "CurrentUser", "CEOUser"]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> User:
    """
    Resolve the bearer token issued by the auth service to an active User.
    """
    if credentials is None:
        raise UnauthorizedException("Missing authentication token")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise InvalidTokenException("Invalid or expired access token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise InvalidTokenException("Malformed token: missing subject")

    try:
        user_id = uuid.UUID(user_id_str)
    except ValueError:
        raise InvalidTokenException("Malformed token: invalid subject format")

    user = await crud_user.get(db, user_id)
    if user is None:
        raise UnauthorizedException("User not found")
    if not user.is_active:
        raise UnauthorizedException("User account is deactivated")

    return user


async def require_ceo(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if current_user.role != "CEO":
        raise PermissionDeniedException("CEO privileges required")
    return current_user


DBSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CEOUser = Annotated[User, Depends(require_ceo)]
