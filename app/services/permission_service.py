"""
Permission catalog service.

The catalog is the fixed vocabulary of `(resource, action)` pairs the
system can check against.  Invariants enforced here:

- `resource` matches `[a-z0-9_]+`.
- `(resource, action)` is unique — re-checked whenever either changes.
- A permission referenced by any role or route cannot be deleted; the
  usage check runs before the delete, never relying on isolation.
"""

import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.models.permission import RESOURCE_PATTERN, Permission, PermissionAction
from app.models.role import role_permissions, route_permissions

logger = logging.getLogger(__name__)


def _validate_resource(resource: str) -> None:
    if not RESOURCE_PATTERN.match(resource):
        raise ValidationError(
            "Resource must contain only lowercase letters, digits and underscores",
            field="resource",
        )


async def _find_by_pair(
    resource: str,
    action: PermissionAction,
    db: AsyncSession,
) -> Permission | None:
    stmt = select(Permission).where(
        Permission.resource == resource,
        Permission.action == action,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_permissions(db: AsyncSession) -> list[Permission]:
    stmt = select(Permission).order_by(Permission.resource, Permission.action)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def group_by_resource(db: AsyncSession) -> dict[str, list[Permission]]:
    grouped: dict[str, list[Permission]] = {}
    for permission in await list_permissions(db):
        grouped.setdefault(permission.resource, []).append(permission)
    return grouped


async def get_permission(permission_id: uuid.UUID, db: AsyncSession) -> Permission:
    permission = await db.get(Permission, permission_id)
    if permission is None:
        raise NotFoundError("Permission not found", code=ErrorCode.PERMISSION_NOT_FOUND)
    return permission


async def get_permissions_by_ids(
    permission_ids: Iterable[uuid.UUID],
    db: AsyncSession,
) -> list[Permission]:
    """
    Resolve every id or fail — used before any role / route write so a
    dangling reference never produces a partial update.
    """
    wanted = list(dict.fromkeys(permission_ids))
    if not wanted:
        return []
    result = await db.execute(select(Permission).where(Permission.id.in_(wanted)))
    found = {p.id: p for p in result.scalars().all()}
    missing = [str(pid) for pid in wanted if pid not in found]
    if missing:
        raise ReferentialIntegrityError(
            f"Unknown permission id(s): {', '.join(missing)}",
            code=ErrorCode.REFERENCE_NOT_FOUND,
            field="permission_ids",
        )
    return [found[pid] for pid in wanted]


async def create_permission(
    resource: str,
    action: PermissionAction,
    db: AsyncSession,
    description: str | None = None,
) -> Permission:
    _validate_resource(resource)
    action = PermissionAction(action)

    if await _find_by_pair(resource, action, db) is not None:
        raise ConflictError(
            f"Permission {resource}:{action.value} already exists",
            field="resource",
            code=ErrorCode.PERMISSION_ALREADY_EXISTS,
        )

    permission = Permission(
        id=uuid.uuid4(),
        resource=resource,
        action=action,
        description=description,
    )
    db.add(permission)
    await db.flush()
    logger.info("Permission %s created", permission.key)
    return permission


async def create_permissions_batch(
    items: Iterable[dict],
    db: AsyncSession,
) -> list[dict]:
    """
    Create many permissions; duplicates are skipped, not fatal.

    Returns one result dict per input item, in input order.
    """
    results: list[dict] = []
    for item in items:
        resource = item["resource"]
        action = PermissionAction(item["action"])
        if not RESOURCE_PATTERN.match(resource):
            results.append(
                {"resource": resource, "action": action, "created": False, "reason": "invalid resource"}
            )
            continue
        if await _find_by_pair(resource, action, db) is not None:
            results.append(
                {"resource": resource, "action": action, "created": False, "reason": "already exists"}
            )
            continue
        permission = await create_permission(resource, action, db, item.get("description"))
        results.append(
            {"resource": resource, "action": action, "created": True, "permission": permission}
        )
    return results


async def update_permission(
    permission_id: uuid.UUID,
    db: AsyncSession,
    resource: str | None = None,
    action: PermissionAction | None = None,
    description: str | None = None,
) -> Permission:
    permission = await get_permission(permission_id, db)

    new_resource = resource if resource is not None else permission.resource
    new_action = PermissionAction(action) if action is not None else permission.action
    _validate_resource(new_resource)

    if (new_resource, new_action) != (permission.resource, permission.action):
        existing = await _find_by_pair(new_resource, new_action, db)
        if existing is not None and existing.id != permission.id:
            raise ConflictError(
                f"Permission {new_resource}:{new_action.value} already exists",
                field="resource",
                code=ErrorCode.PERMISSION_ALREADY_EXISTS,
            )

    permission.resource = new_resource
    permission.action = new_action
    if description is not None:
        permission.description = description
    await db.flush()
    logger.info("Permission %s updated", permission.key)
    return permission


async def count_permission_usage(permission_id: uuid.UUID, db: AsyncSession) -> tuple[int, int]:
    """Return (referencing roles, referencing routes)."""
    role_count = await db.scalar(
        select(func.count()).select_from(role_permissions).where(
            role_permissions.c.permission_id == permission_id
        )
    )
    route_count = await db.scalar(
        select(func.count()).select_from(route_permissions).where(
            route_permissions.c.permission_id == permission_id
        )
    )
    return role_count or 0, route_count or 0


async def delete_permission(permission_id: uuid.UUID, db: AsyncSession) -> None:
    permission = await get_permission(permission_id, db)

    role_count, route_count = await count_permission_usage(permission_id, db)
    if role_count or route_count:
        raise ReferentialIntegrityError(
            f"Permission {permission.key} is still referenced by "
            f"{role_count} role(s) and {route_count} route(s)",
            code=ErrorCode.RESOURCE_IN_USE,
        )

    await db.delete(permission)
    await db.flush()
    logger.info("Permission %s deleted", permission.key)
