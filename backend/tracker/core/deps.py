"""
FastAPI dependencies for authentication.

WHY: Every ticket, review and project route needs the caller as a
Principal. Resolving it in one dependency keeps token handling out of
route handlers and services.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.core.auth import verify_token
from tracker.core.exceptions import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)
from tracker.core.permissions import Principal
from tracker.db.session import get_db
from tracker.models.user import User
from tracker.dao.user import UserDAO


# HTTP Bearer token security scheme
# WHY: auto_error=False so a missing header goes through our own
# AuthenticationError (401) rather than Starlette's default response.
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    WHY: This dependency:
    1. Extracts token from Authorization header
    2. Verifies token signature and expiration
    3. Fetches user from database
    4. Ensures user still exists and is active

    Raises:
        AuthenticationError: If token is missing, invalid, expired, or user not found
    """
    if credentials is None:
        raise AuthenticationError(message="Not authenticated")

    try:
        payload = verify_token(credentials.credentials)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(
            message=str(e),
            status_code=e.status_code,
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(
            message="Invalid token: missing user_id",
        )

    # WHY: Role and organization in the token might be stale; always
    # fetch current data
    user = await UserDAO(db).get_by_id(user_id)

    if not user:
        raise AuthenticationError(
            message="User not found",
            user_id=user_id,
        )

    if not user.is_active:
        raise AuthenticationError(
            message="User account is inactive",
            user_id=user_id,
        )

    return user


async def get_current_principal(
    current_user: User = Depends(get_current_user),
) -> Principal:
    """
    Get the authenticated caller as a Principal.

    Usage:
        @router.get("/tickets")
        async def list_tickets(principal: Principal = Depends(get_current_principal)):
            ...
    """
    return Principal.from_user(current_user)
