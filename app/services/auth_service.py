"""
Authentication service.

Handles:
- Login (username + password → access & refresh tokens)
- Refresh (refresh token → new pair; account re-checked)
- Current-user profile, including the freshly derived ability

Token claims carry identity only.  Authorization always goes back to
the user's current roles, so a role change takes effect on the next
request, not the next login.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ErrorCode, UnauthenticatedError
from app.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    verify_password,
)
from app.models.user import User, UserStatus
from app.rbac.ability import Ability
from app.rbac.dependencies import load_user_with_permissions
from app.services.user_service import get_user_by_username

logger = logging.getLogger(__name__)


def _ensure_active(user: User) -> None:
    if user.status == UserStatus.SUSPENDED:
        raise UnauthenticatedError("Account is suspended", code=ErrorCode.ACCOUNT_DISABLED)
    if user.status != UserStatus.ACTIVE:
        raise UnauthenticatedError("Account is not active", code=ErrorCode.ACCOUNT_DISABLED)


def _issue_tokens(user: User) -> dict:
    role_names = [r.name for r in user.roles]
    access_token = create_access_token({
        "sub": str(user.id),
        "username": user.username,
        "roles": role_names,
    })
    refresh_token = create_refresh_token({"sub": str(user.id)})
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user_id": user.id,
        "roles": role_names,
    }


async def authenticate_user(username: str, password: str, db: AsyncSession) -> dict:
    """Validate credentials and return a token pair."""
    user = await get_user_by_username(username, db)

    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for username %r", username)
        raise UnauthenticatedError(
            "Invalid username or password",
            code=ErrorCode.INVALID_CREDENTIALS,
        )

    _ensure_active(user)

    user.last_login = datetime.now(timezone.utc)
    user.login_count = (user.login_count or 0) + 1
    await db.flush()

    logger.info("User %s logged in", user.username)
    return _issue_tokens(user)


async def refresh_access_token(refresh_token_raw: str, db: AsyncSession) -> dict:
    payload = decode_token(refresh_token_raw, expected_type=REFRESH_TOKEN_TYPE)
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise UnauthenticatedError("Invalid refresh token payload", code=ErrorCode.INVALID_TOKEN)

    user = await load_user_with_permissions(user_id, db)
    if user is None:
        raise UnauthenticatedError("User not found", code=ErrorCode.ACCOUNT_NOT_FOUND)
    _ensure_active(user)

    return _issue_tokens(user)


def build_profile(user: User, ability: Ability) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "nickname": user.nickname,
        "status": user.status,
        "last_login": user.last_login,
        "login_count": user.login_count,
        "roles": [r.name for r in user.roles],
        "permissions": sorted(ability),
    }
