"""
User service — CRUD & role assignment.

A user has no permissions of its own, only role assignments.  When
`role_ids` is supplied on update, the assignment set is replaced
wholesale (same contract as a role's permission set).
"""

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ErrorCode, NotFoundError
from app.core.security import hash_password
from app.models.role import user_roles
from app.models.user import User, UserStatus
from app.services.role_service import get_role, get_roles_by_ids

logger = logging.getLogger(__name__)


async def get_user_by_id(user_id: uuid.UUID, db: AsyncSession) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", code=ErrorCode.USER_NOT_FOUND)
    return user


async def get_user_by_username(username: str, db: AsyncSession) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def _ensure_email_free(email: str | None, db: AsyncSession, exclude_id: uuid.UUID | None = None) -> None:
    if not email:
        return
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(
            "Email is already in use",
            field="email",
            code=ErrorCode.EMAIL_ALREADY_EXISTS,
        )


async def list_users(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    search: str | None = None,
    status: UserStatus | None = None,
    role_id: uuid.UUID | None = None,
) -> tuple[list[User], int]:
    """Paginated listing.  Returns (users, total)."""
    stmt = select(User)

    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.nickname.ilike(pattern),
            )
        )
    if status is not None:
        stmt = stmt.where(User.status == status)
    if role_id is not None:
        stmt = stmt.where(
            User.id.in_(select(user_roles.c.user_id).where(user_roles.c.role_id == role_id))
        )

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))

    stmt = stmt.order_by(User.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(stmt)
    return list(result.scalars().all()), total or 0


async def create_user(
    username: str,
    password: str,
    db: AsyncSession,
    email: str | None = None,
    nickname: str | None = None,
    phone_number: str | None = None,
    status: UserStatus = UserStatus.ACTIVE,
    role_ids: Sequence[uuid.UUID] = (),
) -> User:
    if await get_user_by_username(username, db) is not None:
        raise ConflictError(
            "Username is already taken",
            field="username",
            code=ErrorCode.USERNAME_ALREADY_EXISTS,
        )
    await _ensure_email_free(email, db)
    roles = await get_roles_by_ids(role_ids, db)

    user = User(
        id=uuid.uuid4(),
        username=username,
        email=email,
        password_hash=hash_password(password),
        nickname=nickname,
        phone_number=phone_number,
        status=status,
        login_count=0,
        roles=roles,
    )
    db.add(user)
    await db.flush()
    logger.info("User %s created with roles %s", username, [r.name for r in roles])
    return user


async def set_user_roles(user: User, role_ids: Sequence[uuid.UUID], db: AsyncSession) -> User:
    """Replace the assignment set: delete all, flush, insert."""
    roles = await get_roles_by_ids(role_ids, db)
    user.roles.clear()
    await db.flush()
    user.roles.extend(roles)
    await db.flush()
    return user


async def update_user(
    user_id: uuid.UUID,
    db: AsyncSession,
    changes: dict,
) -> User:
    """Apply a partial update.  Only keys present in `changes` are touched."""
    user = await get_user_by_id(user_id, db)

    if "email" in changes:
        await _ensure_email_free(changes["email"], db, exclude_id=user.id)
    role_ids = changes.get("role_ids")
    if role_ids is not None:
        await get_roles_by_ids(role_ids, db)

    for field in ("email", "nickname", "phone_number"):
        if field in changes:
            setattr(user, field, changes[field])
    if changes.get("status") is not None:
        user.status = changes["status"]

    if role_ids is not None:
        await set_user_roles(user, role_ids, db)

    await db.flush()
    return user


async def assign_role(user_id: uuid.UUID, role_id: uuid.UUID, db: AsyncSession) -> User:
    user = await get_user_by_id(user_id, db)
    role = await get_role(role_id, db)
    if role not in user.roles:
        user.roles.append(role)
        await db.flush()
        logger.info("Role %s assigned to user %s", role.name, user.username)
    return user


async def revoke_role(user_id: uuid.UUID, role_id: uuid.UUID, db: AsyncSession) -> User:
    user = await get_user_by_id(user_id, db)
    role = await get_role(role_id, db)
    if role in user.roles:
        user.roles.remove(role)
        await db.flush()
        logger.info("Role %s revoked from user %s", role.name, user.username)
    return user


async def delete_user(user_id: uuid.UUID, db: AsyncSession) -> None:
    user = await get_user_by_id(user_id, db)
    await db.delete(user)
    await db.flush()
    logger.info("User %s deleted", user.username)


async def delete_users(user_ids: Sequence[uuid.UUID], db: AsyncSession) -> int:
    """Delete several users at once.  Every id must resolve before anything is removed."""
    wanted = list(dict.fromkeys(user_ids))
    if not wanted:
        return 0
    result = await db.execute(select(User).where(User.id.in_(wanted)))
    found = {u.id: u for u in result.scalars().all()}
    missing = [str(uid) for uid in wanted if uid not in found]
    if missing:
        raise NotFoundError(
            f"Unknown user id(s): {', '.join(missing)}",
            code=ErrorCode.USER_NOT_FOUND,
            field="ids",
        )

    for user in found.values():
        await db.delete(user)
    await db.flush()
    logger.info("Deleted %d user(s): %s", len(found), [u.username for u in found.values()])
    return len(found)
