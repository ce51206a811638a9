"""
Route service — the navigation catalog.

Invariants:
- `path` and `name` are each unique.
- `parent_id` must reference an existing route other than the route
  itself.
- A route with children cannot be deleted.
- `permission_ids`, when supplied on update, replaces the requirement
  set wholesale (delete-all, then insert).
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
from app.models.route import Route
from app.rbac.menu import sort_routes
from app.services.permission_service import get_permissions_by_ids

logger = logging.getLogger(__name__)


async def list_routes_flat(db: AsyncSession) -> list[Route]:
    """Every route, ordered by `order` then creation time."""
    stmt = select(Route).order_by(Route.order, Route.created_at)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_route_tree(db: AsyncSession) -> list[tuple[Route, list[Route]]]:
    """Top-level routes paired with their direct children."""
    routes = await list_routes_flat(db)
    children: dict[uuid.UUID, list[Route]] = {}
    for route in routes:
        if route.parent_id is not None:
            children.setdefault(route.parent_id, []).append(route)
    return [
        (route, sort_routes(children.get(route.id, [])))
        for route in routes
        if route.parent_id is None
    ]


async def get_route(route_id: uuid.UUID, db: AsyncSession) -> Route:
    route = await db.get(Route, route_id)
    if route is None:
        raise NotFoundError("Route not found", code=ErrorCode.RESOURCE_NOT_FOUND)
    return route


async def get_route_by_path(path: str, db: AsyncSession) -> Route | None:
    result = await db.execute(select(Route).where(Route.path == path))
    return result.scalar_one_or_none()


async def _ensure_unique(
    db: AsyncSession,
    path: str | None = None,
    name: str | None = None,
    exclude_id: uuid.UUID | None = None,
) -> None:
    for field, value in (("path", path), ("name", name)):
        if value is None:
            continue
        stmt = select(Route.id).where(getattr(Route, field) == value)
        if exclude_id is not None:
            stmt = stmt.where(Route.id != exclude_id)
        if (await db.execute(stmt)).first() is not None:
            raise ConflictError(f"Route {field} '{value}' already exists", field=field)


async def _ensure_parent(parent_id: uuid.UUID, db: AsyncSession, route_id: uuid.UUID | None = None) -> None:
    if route_id is not None and parent_id == route_id:
        raise ValidationError("A route cannot be its own parent", field="parent_id")
    parent = await db.get(Route, parent_id)
    if parent is None:
        raise ReferentialIntegrityError(
            "Parent route does not exist",
            code=ErrorCode.REFERENCE_NOT_FOUND,
            field="parent_id",
        )
    if route_id is None:
        return

    # walk up from the new parent; meeting the route itself means a cycle
    seen: set[uuid.UUID] = set()
    ancestor = parent
    while ancestor is not None and ancestor.id not in seen:
        if ancestor.parent_id == route_id:
            raise ValidationError("Route parents cannot form a cycle", field="parent_id")
        seen.add(ancestor.id)
        ancestor = await db.get(Route, ancestor.parent_id) if ancestor.parent_id else None


async def create_route(
    path: str,
    name: str,
    title: str,
    db: AsyncSession,
    component: str | None = None,
    icon: str | None = None,
    parent_id: uuid.UUID | None = None,
    order: int = 0,
    hidden: bool = False,
    permission_ids: Sequence[uuid.UUID] = (),
) -> Route:
    await _ensure_unique(db, path=path, name=name)
    if parent_id is not None:
        await _ensure_parent(parent_id, db)
    permissions = await get_permissions_by_ids(permission_ids, db)

    route = Route(
        id=uuid.uuid4(),
        path=path,
        name=name,
        title=title,
        component=component,
        icon=icon,
        parent_id=parent_id,
        order=order,
        hidden=hidden,
        permissions=permissions,
    )
    db.add(route)
    await db.flush()
    logger.info("Route %s created", route.path)
    return route


async def update_route(route_id: uuid.UUID, db: AsyncSession, changes: dict) -> Route:
    """
    Apply a partial update.  Only keys present in `changes` are touched,
    so `{"parent_id": None}` explicitly moves a route to the top level.
    """
    route = await get_route(route_id, db)

    await _ensure_unique(
        db,
        path=changes.get("path") if changes.get("path") != route.path else None,
        name=changes.get("name") if changes.get("name") != route.name else None,
        exclude_id=route.id,
    )
    if changes.get("parent_id") is not None:
        await _ensure_parent(changes["parent_id"], db, route_id=route.id)
    permission_ids = changes.get("permission_ids")
    if permission_ids is not None:
        permissions = await get_permissions_by_ids(permission_ids, db)

    for field in ("path", "name", "title", "order", "hidden"):
        if changes.get(field) is not None:
            setattr(route, field, changes[field])
    for field in ("component", "icon", "parent_id"):
        if field in changes:
            setattr(route, field, changes[field])

    if permission_ids is not None:
        route.permissions.clear()
        await db.flush()
        route.permissions.extend(permissions)

    await db.flush()
    logger.info("Route %s updated", route.path)
    return route


async def delete_route(route_id: uuid.UUID, db: AsyncSession) -> None:
    route = await get_route(route_id, db)

    child_count = await db.scalar(
        select(func.count()).select_from(Route).where(Route.parent_id == route_id)
    )
    if child_count:
        raise ReferentialIntegrityError(
            f"Route '{route.path}' still has {child_count} child route(s)",
            code=ErrorCode.RESOURCE_IN_USE,
        )

    await db.delete(route)
    await db.flush()
    logger.info("Route %s deleted", route.path)
