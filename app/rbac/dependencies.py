"""
RBAC dependencies — the route guard.

Per request:

    Unauthenticated → Authenticating → {Authenticated, Rejected}
    Authenticated   → {Authorized, Forbidden}

1. Extract the bearer token (Authorization header, then cookie).
   Missing → 401.
2. Decode it into a user id.  Invalid / expired → 401.
3. Load the user with roles → permissions.  Missing or not ACTIVE → 401.
   Token validity and account validity are checked independently.
4. Derive the ability from the user's *current* roles and attach an
   `AuthContext` to `request.state.auth`.
5. For a protected endpoint, evaluate the requirement(s).  Fail → 403.

Nothing here writes to the database.

Usage in a route:
    @router.get("/roles", dependencies=[Depends(require_permission("READ", "role"))])
    async def list_roles(...): ...

Or inject the context:
    @router.get("/users")
    async def list_users(auth: AuthContext = Depends(require_permission("READ", "user"))): ...
"""

import logging
import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.core.exceptions import ErrorCode, ForbiddenError, UnauthenticatedError
from app.core.security import decode_token, extract_token
from app.models.role import Role
from app.models.user import User
from app.rbac.ability import (
    Ability,
    Requirement,
    can_perform,
    can_perform_any,
    derive_ability,
    permission_key,
)

logger = logging.getLogger("rbac")


@dataclass(frozen=True)
class AuthContext:
    """The authenticated principal plus its freshly derived ability."""

    user: User
    ability: Ability

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    def can(self, action: str, resource: str) -> bool:
        return can_perform(self.ability, action, resource)


async def load_user_with_permissions(user_id: uuid.UUID, db: AsyncSession) -> User | None:
    """Fetch the user and eagerly load roles → permissions in one go."""
    stmt = (
        select(User)
        .options(selectinload(User.roles).selectinload(Role.permissions))
        .where(User.id == user_id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def resolve_auth_context(request: Request, db: AsyncSession) -> AuthContext:
    """Steps 1–4.  Raises UnauthenticatedError on any failure."""
    token = extract_token(request)
    if token is None:
        raise UnauthenticatedError("No token provided")

    payload = decode_token(token)
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise UnauthenticatedError("Invalid token payload", code=ErrorCode.INVALID_TOKEN)

    user = await load_user_with_permissions(user_id, db)
    if user is None:
        raise UnauthenticatedError("User not found", code=ErrorCode.ACCOUNT_NOT_FOUND)
    if not user.is_active:
        raise UnauthenticatedError("Account is disabled", code=ErrorCode.ACCOUNT_DISABLED)

    context = AuthContext(user=user, ability=derive_ability(user.roles))
    request.state.auth = context
    return context


async def authenticate(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Dependency for routes that only need authentication, not authorization."""
    return await resolve_auth_context(request, db)


async def optional_authenticate(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext | None:
    """Like `authenticate`, but an unauthenticated caller proceeds as anonymous."""
    try:
        return await resolve_auth_context(request, db)
    except UnauthenticatedError as exc:
        logger.debug("Optional authentication skipped: %s", exc.message)
        request.state.auth = None
        return None


class require_permission:
    """
    Dependency factory for a single `(action, resource)` requirement.

        Depends(require_permission("READ", "user"))
    """

    def __init__(self, action: str, resource: str):
        self.requirement: Requirement = (action, resource)
        self.key = permission_key(resource, action)  # rejects unknown actions at registration

    async def __call__(self, auth: AuthContext = Depends(authenticate)) -> AuthContext:
        action, resource = self.requirement
        if not can_perform(auth.ability, action, resource):
            logger.warning(
                "Permission denied for user %s, required: %s",
                auth.user_id,
                self.key,
            )
            # do NOT reveal what the caller holds
            raise ForbiddenError()
        return auth


class require_any_permission:
    """
    Dependency factory — passes if ANY of the requirements is satisfied.

        Depends(require_any_permission(("READ", "user"), ("MANAGE", "role")))
    """

    def __init__(self, *requirements: Requirement):
        if not requirements:
            raise ValueError("require_any_permission needs at least one requirement")
        for action, resource in requirements:
            permission_key(resource, action)  # rejects unknown actions at registration
        self.requirements: tuple[Requirement, ...] = requirements

    async def __call__(self, auth: AuthContext = Depends(authenticate)) -> AuthContext:
        if not can_perform_any(auth.ability, self.requirements):
            logger.warning(
                "Permission denied for user %s, required any of: %s",
                auth.user_id,
                ", ".join(permission_key(resource, action) for action, resource in self.requirements),
            )
            raise ForbiddenError()
        return auth
