"""
Menu service — per-principal navigation and ad-hoc route checks.

Both queries re-derive the ability from the principal's current roles;
nothing is cached between calls.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.route import Route
from app.rbac.ability import derive_ability
from app.rbac.dependencies import load_user_with_permissions
from app.rbac.menu import is_route_visible, project_menu
from app.schemas import MenuItemOut
from app.services.route_service import get_route_by_path


async def get_menu_for_principal(user_id: uuid.UUID, db: AsyncSession) -> list[MenuItemOut]:
    """The visible menu tree for a user; an unknown or inactive user gets nothing."""
    user = await load_user_with_permissions(user_id, db)
    if user is None or not user.is_active:
        return []

    ability = derive_ability(user.roles)
    result = await db.execute(select(Route).where(Route.hidden == False))  # noqa: E712
    return project_menu(list(result.scalars().all()), ability)


async def check_access(user_id: uuid.UUID, path: str, db: AsyncSession) -> bool:
    """
    May this user navigate to `path`?

    An unknown path answers False, exactly like a forbidden one, so the
    caller cannot probe which routes exist.  Unknown or inactive users
    also answer False.
    """
    route = await get_route_by_path(path, db)
    if route is None:
        return False

    user = await load_user_with_permissions(user_id, db)
    if user is None or not user.is_active:
        return False

    return is_route_visible(route, derive_ability(user.roles))
