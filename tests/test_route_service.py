"""Route catalog service and menu service against a seeded database."""

import uuid

import pytest

from app.core.exceptions import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from app.services import menu_service, route_service


@pytest.mark.asyncio
async def test_seeded_tree(db):
    tree = await route_service.list_route_tree(db)
    top = [route.path for route, _ in tree]
    assert top == ["/", "/users", "/roles", "/permissions", "/routes", "/tasks", "/chats", "/apps", "/settings"]

    settings_children = dict((r.path, c) for r, c in tree)["/settings"]
    assert [c.path for c in settings_children] == ["/settings/", "/settings/appearance"]


@pytest.mark.asyncio
async def test_path_and_name_are_unique(db):
    with pytest.raises(ConflictError) as exc_info:
        await route_service.create_route(path="/users", name="other", title="X", db=db)
    assert exc_info.value.field == "path"

    with pytest.raises(ConflictError) as exc_info:
        await route_service.create_route(path="/other", name="users", title="X", db=db)
    assert exc_info.value.field == "name"


@pytest.mark.asyncio
async def test_parent_must_exist_and_differ(db):
    with pytest.raises(ReferentialIntegrityError) as exc_info:
        await route_service.create_route(path="/orphan", name="orphan", title="Orphan", parent_id=uuid.uuid4(), db=db)
    assert exc_info.value.code == ErrorCode.REFERENCE_NOT_FOUND

    route = await route_service.create_route(path="/solo", name="solo", title="Solo", db=db)
    with pytest.raises(ValidationError) as exc_info:
        await route_service.update_route(route.id, db, {"parent_id": route.id})
    assert exc_info.value.field == "parent_id"


@pytest.mark.asyncio
async def test_parent_cycles_are_rejected(db):
    a = await route_service.create_route(path="/a", name="a", title="A", db=db)
    b = await route_service.create_route(path="/a/b", name="a-b", title="B", parent_id=a.id, db=db)
    c = await route_service.create_route(path="/a/b/c", name="a-b-c", title="C", parent_id=b.id, db=db)

    with pytest.raises(ValidationError) as exc_info:
        await route_service.update_route(a.id, db, {"parent_id": b.id})
    assert exc_info.value.field == "parent_id"
    with pytest.raises(ValidationError):
        await route_service.update_route(a.id, db, {"parent_id": c.id})
    assert a.parent_id is None


@pytest.mark.asyncio
async def test_route_with_children_cannot_be_deleted(db):
    parent = await route_service.get_route_by_path("/settings", db)
    with pytest.raises(ReferentialIntegrityError) as exc_info:
        await route_service.delete_route(parent.id, db)
    assert exc_info.value.code == ErrorCode.RESOURCE_IN_USE

    leaf = await route_service.get_route_by_path("/settings/appearance", db)
    await route_service.delete_route(leaf.id, db)
    with pytest.raises(NotFoundError):
        await route_service.get_route(leaf.id, db)


@pytest.mark.asyncio
async def test_update_replaces_permissions_and_moves_to_top_level(db):
    child = await route_service.get_route_by_path("/settings/", db)
    users_route = await route_service.get_route_by_path("/users", db)
    user_read = users_route.permissions[0]

    updated = await route_service.update_route(
        child.id, db, {"parent_id": None, "permission_ids": [user_read.id], "title": "Profile"}
    )
    assert updated.parent_id is None
    assert [p.key for p in updated.permissions] == ["user:READ"]

    updated = await route_service.update_route(child.id, db, {"permission_ids": []})
    assert updated.permissions == []


# ── Menu service ───────────────────────────────────

@pytest.mark.asyncio
async def test_menu_for_limited_admin(db, users):
    menu = await menu_service.get_menu_for_principal(users["bob"], db)
    assert [item.path for item in menu][:3] == ["/", "/users", "/roles"]
    settings_item = next(item for item in menu if item.path == "/settings")
    assert [c.path for c in settings_item.children] == ["/settings/", "/settings/appearance"]


@pytest.mark.asyncio
async def test_menu_for_user_without_roles(db, users):
    assert await menu_service.get_menu_for_principal(users["carol"], db) == []


@pytest.mark.asyncio
async def test_menu_for_unknown_user(db):
    assert await menu_service.get_menu_for_principal(uuid.uuid4(), db) == []


@pytest.mark.asyncio
async def test_menu_for_suspended_user(db, users):
    assert await menu_service.get_menu_for_principal(users["dave"], db) == []


@pytest.mark.asyncio
async def test_check_access(db, users):
    assert await menu_service.check_access(users["bob"], "/roles", db)
    assert not await menu_service.check_access(users["carol"], "/roles", db)
    # children carry no requirement of their own
    assert await menu_service.check_access(users["carol"], "/settings/appearance", db)
    assert not await menu_service.check_access(users["alice"], "/does-not-exist", db)
    assert not await menu_service.check_access(users["dave"], "/roles", db)
