"""
Role service.

Rules:
- `name` is unique and immutable once created.
- System roles (`is_system=True`) can be neither updated nor deleted,
  whatever the caller's permissions.
- A role with any assigned user cannot be deleted.
- A role's permission set is REPLACED wholesale on update: every
  existing link is deleted, then the new set is inserted.  It is not a
  diff/merge; replaying the same update yields the same final set.
"""

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.models.role import Role, user_roles
from app.services.permission_service import get_permissions_by_ids

logger = logging.getLogger(__name__)


async def count_role_users(role_id: uuid.UUID, db: AsyncSession) -> int:
    count = await db.scalar(
        select(func.count()).select_from(user_roles).where(user_roles.c.role_id == role_id)
    )
    return count or 0


async def user_counts_by_role(db: AsyncSession) -> dict[uuid.UUID, int]:
    stmt = select(user_roles.c.role_id, func.count()).group_by(user_roles.c.role_id)
    result = await db.execute(stmt)
    return {role_id: count for role_id, count in result.all()}


async def list_roles(db: AsyncSession) -> list[Role]:
    """All roles, newest first."""
    stmt = select(Role).order_by(Role.created_at.desc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_role(role_id: uuid.UUID, db: AsyncSession) -> Role:
    role = await db.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found", code=ErrorCode.ROLE_NOT_FOUND)
    return role


async def get_role_by_name(name: str, db: AsyncSession) -> Role | None:
    result = await db.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def get_roles_by_ids(role_ids: Sequence[uuid.UUID], db: AsyncSession) -> list[Role]:
    """Resolve every id or fail before anything is written."""
    wanted = list(dict.fromkeys(role_ids))
    if not wanted:
        return []
    result = await db.execute(select(Role).where(Role.id.in_(wanted)))
    found = {r.id: r for r in result.scalars().all()}
    missing = [str(rid) for rid in wanted if rid not in found]
    if missing:
        raise ReferentialIntegrityError(
            f"Unknown role id(s): {', '.join(missing)}",
            code=ErrorCode.REFERENCE_NOT_FOUND,
            field="role_ids",
        )
    return [found[rid] for rid in wanted]


async def create_role(
    name: str,
    display_name: str,
    db: AsyncSession,
    description: str | None = None,
    permission_ids: Sequence[uuid.UUID] = (),
    is_system: bool = False,
) -> Role:
    if await get_role_by_name(name, db) is not None:
        raise ConflictError(
            f"Role '{name}' already exists",
            field="name",
            code=ErrorCode.ROLE_ALREADY_EXISTS,
        )

    permissions = await get_permissions_by_ids(permission_ids, db)

    role = Role(
        id=uuid.uuid4(),
        name=name,
        display_name=display_name,
        description=description,
        is_system=is_system,
        permissions=permissions,
    )
    db.add(role)
    await db.flush()
    logger.info("Role %s created with %d permission(s)", role.name, len(permissions))
    return role


def _ensure_mutable(role: Role, verb: str) -> None:
    if role.is_system:
        raise ValidationError(
            f"System role '{role.name}' cannot be {verb}",
            code=ErrorCode.CANNOT_MODIFY_SYSTEM_ROLE,
        )


async def replace_role_permissions(
    role: Role,
    permission_ids: Sequence[uuid.UUID],
    db: AsyncSession,
) -> Role:
    """Delete every existing link, flush, then insert the new set."""
    permissions = await get_permissions_by_ids(permission_ids, db)

    role.permissions.clear()
    await db.flush()
    role.permissions.extend(permissions)
    await db.flush()
    return role


async def update_role(
    role_id: uuid.UUID,
    db: AsyncSession,
    display_name: str | None = None,
    description: str | None = None,
    permission_ids: Sequence[uuid.UUID] | None = None,
) -> Role:
    role = await get_role(role_id, db)
    _ensure_mutable(role, "modified")

    if permission_ids is not None:
        # resolve first so an unknown id fails before anything changes
        await get_permissions_by_ids(permission_ids, db)

    if display_name is not None:
        role.display_name = display_name
    if description is not None:
        role.description = description

    if permission_ids is not None:
        await replace_role_permissions(role, permission_ids, db)

    await db.flush()
    logger.info("Role %s updated", role.name)
    return role


async def delete_role(role_id: uuid.UUID, db: AsyncSession) -> None:
    role = await get_role(role_id, db)
    _ensure_mutable(role, "deleted")

    assigned = await count_role_users(role_id, db)
    if assigned:
        raise ReferentialIntegrityError(
            f"Role '{role.name}' is assigned to {assigned} user(s)",
            code=ErrorCode.ROLE_IN_USE,
        )

    await db.delete(role)
    await db.flush()
    logger.info("Role %s deleted", role.name)
