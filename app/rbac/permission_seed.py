"""
Permission, role & route seeding script.

Run this once against a live database to populate the default
catalog.  It is IDEMPOTENT — safe to re-run; existing rows are left
untouched.  A default route is matched by path or name, so one an admin
renamed is not duplicated; a default that was deleted IS re-created on
the next run (disable with SEED_ON_STARTUP=false).

Seeded:
    • every (resource, action) pair for the built-in resources
    • admin_a — system role holding every permission
    • admin_b — system role: every READ, user IMPORT/UPDATE/DELETE/EXPORT,
      everything on dashboard & settings, but NEVER user:CREATE
    • the default navigation tree

Usage:
    python -m app.rbac.permission_seed
"""

import asyncio
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import build_engine, build_session_factory
from app.models.base import Base
from app.models.permission import Permission, PermissionAction
from app.models.role import Role
from app.models.route import Route

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────────────
# 1.  CANONICAL PERMISSION LIST
# ────────────────────────────────────────────────────────────────────
RESOURCES: tuple[str, ...] = ("user", "role", "permission", "route", "dashboard", "settings")

PERMISSIONS: list[tuple[str, PermissionAction]] = [
    (resource, action) for resource in RESOURCES for action in PermissionAction
]


def _admin_b_grants(resource: str, action: PermissionAction) -> bool:
    if resource == "user" and action == PermissionAction.CREATE:
        return False
    if action == PermissionAction.READ:
        return True
    if resource == "user" and action in (
        PermissionAction.IMPORT,
        PermissionAction.UPDATE,
        PermissionAction.DELETE,
        PermissionAction.EXPORT,
    ):
        return True
    return resource in ("dashboard", "settings")


# ────────────────────────────────────────────────────────────────────
# 2.  SYSTEM ROLES
# ────────────────────────────────────────────────────────────────────
ROLES: dict[str, dict] = {
    "admin_a": {
        "display_name": "Administrator A",
        "description": "Super administrator holding every permission",
        "grants": lambda resource, action: True,
    },
    "admin_b": {
        "display_name": "Administrator B",
        "description": "Limited administrator: may import users but not create them",
        "grants": _admin_b_grants,
    },
}

# ────────────────────────────────────────────────────────────────────
# 3.  DEFAULT NAVIGATION
#     Each top-level route requires READ on its resource.
# ────────────────────────────────────────────────────────────────────
TOP_ROUTES: list[dict] = [
    {"path": "/", "name": "dashboard", "title": "Dashboard", "icon": "IconLayoutDashboard", "order": 0, "resource": "dashboard"},
    {"path": "/users", "name": "users", "title": "Users", "icon": "IconUsers", "order": 1, "resource": "user"},
    {"path": "/roles", "name": "roles", "title": "Roles", "icon": "IconUserShield", "order": 2, "resource": "role"},
    {"path": "/permissions", "name": "permissions", "title": "Permissions", "icon": "IconLock", "order": 3, "resource": "permission"},
    {"path": "/routes", "name": "routes", "title": "Routes", "icon": "IconRoute", "order": 4, "resource": "route"},
    {"path": "/tasks", "name": "tasks", "title": "Tasks", "icon": "IconChecklist", "order": 5, "resource": "dashboard"},
    {"path": "/chats", "name": "chats", "title": "Chats", "icon": "IconMessages", "order": 6, "resource": "dashboard"},
    {"path": "/apps", "name": "apps", "title": "Apps", "icon": "IconApps", "order": 7, "resource": "dashboard"},
    {"path": "/settings", "name": "settings", "title": "Settings", "icon": "IconSettings", "order": 10, "resource": "settings"},
]

# Children carry no requirement of their own; the parent gates them in the menu.
SETTINGS_CHILDREN: list[dict] = [
    {"path": "/settings/", "name": "settings-profile", "title": "Profile", "order": 0},
    {"path": "/settings/appearance", "name": "settings-appearance", "title": "Appearance", "order": 1},
]


# ────────────────────────────────────────────────────────────────────
# 4.  SEED FUNCTION (idempotent)
# ────────────────────────────────────────────────────────────────────
async def seed(session: AsyncSession) -> None:
    """Create permissions, system roles & routes if they don't already exist."""

    # ── Permissions ──────────────────────────────────────────────────
    existing_perms = (await session.execute(select(Permission))).scalars().all()
    by_pair: dict[tuple[str, PermissionAction], Permission] = {
        (p.resource, p.action): p for p in existing_perms
    }

    created = 0
    for resource, action in PERMISSIONS:
        if (resource, action) not in by_pair:
            perm = Permission(
                id=uuid.uuid4(),
                resource=resource,
                action=action,
                description=f"{action.value} {resource}",
            )
            session.add(perm)
            by_pair[(resource, action)] = perm
            created += 1

    await session.flush()  # ensure IDs are available
    logger.info("Seeded %d new permission(s)", created)

    # ── Roles ────────────────────────────────────────────────────────
    existing_role_names = set((await session.execute(select(Role.name))).scalars().all())

    for role_name, definition in ROLES.items():
        if role_name in existing_role_names:
            continue
        role = Role(
            id=uuid.uuid4(),
            name=role_name,
            display_name=definition["display_name"],
            description=definition["description"],
            is_system=True,
            permissions=[
                perm for (resource, action), perm in by_pair.items()
                if resource in RESOURCES and definition["grants"](resource, action)
            ],
        )
        session.add(role)
        logger.info("Seeded system role %s", role_name)

    # ── Routes ───────────────────────────────────────────────────────
    # A default is skipped when its path OR its name is already taken, so a
    # renamed default is never duplicated.  Deleted defaults are re-created.
    existing_routes = (await session.execute(select(Route))).scalars().all()
    taken_paths = {r.path for r in existing_routes}
    by_name = {r.name: r for r in existing_routes}

    for data in TOP_ROUTES:
        if data["path"] in taken_paths or data["name"] in by_name:
            continue
        route = Route(
            id=uuid.uuid4(),
            path=data["path"],
            name=data["name"],
            title=data["title"],
            icon=data["icon"],
            order=data["order"],
            permissions=[by_pair[(data["resource"], PermissionAction.READ)]],
        )
        session.add(route)
        taken_paths.add(route.path)
        by_name[route.name] = route

    await session.flush()

    parent = by_name.get("settings")
    if parent is None:
        logger.warning("Route 'settings' not found; skipping its default children")
    else:
        for data in SETTINGS_CHILDREN:
            if data["path"] in taken_paths or data["name"] in by_name:
                continue
            child = Route(id=uuid.uuid4(), parent_id=parent.id, permissions=[], **data)
            session.add(child)
            taken_paths.add(child.path)
            by_name[child.name] = child

    await session.commit()
    logger.info("Permissions, roles and routes seeded successfully.")


# ────────────────────────────────────────────────────────────────────
# 5.  CLI entrypoint:  python -m app.rbac.permission_seed
# ────────────────────────────────────────────────────────────────────
async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    engine = build_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        await seed(session)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
