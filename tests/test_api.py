"""End-to-end tests through the ASGI app: auth, route guard, menus and CRUD."""

import uuid

import pytest
from fastapi import Depends

from app.core.config import settings
from app.core.security import create_access_token, create_refresh_token
from app.rbac.dependencies import (
    AuthContext,
    optional_authenticate,
    require_any_permission,
    require_permission,
)


def _code(response) -> int:
    return response.json()["detail"]["code"]


async def _role_id(client, headers, name: str) -> str:
    resp = await client.get("/api/roles", headers=headers["alice"])
    return next(r["id"] for r in resp.json() if r["name"] == name)


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


# ── Auth ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_login_and_me(client, users, password):
    resp = await client.post("/api/auth/login", json={"username": "alice", "password": password})
    assert resp.status_code == 200
    body = resp.json()
    assert body["roles"] == ["admin_a"]
    assert body["user_id"] == str(users["alice"])
    assert resp.cookies.get(settings.AUTH_COOKIE_NAME) == body["access_token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["login_count"] == 1
    assert "user:CREATE" in me.json()["permissions"]


@pytest.mark.asyncio
async def test_login_failures(client, users, password):
    resp = await client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401
    assert _code(resp) == 2003

    resp = await client.post("/api/auth/login", json={"username": "dave", "password": password})
    assert resp.status_code == 401
    assert _code(resp) == 2004


@pytest.mark.asyncio
async def test_cookie_auth_and_logout(client, users, password):
    await client.post("/api/auth/login", json={"username": "bob", "password": password})

    me = await client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "bob"

    await client.post("/api/auth/logout")
    client.cookies.clear()
    assert (await client.get("/api/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_refresh(client, users):
    refresh = create_refresh_token({"sub": str(users["bob"])})
    resp = await client.post("/api/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    assert resp.json()["roles"] == ["admin_b"]

    access = create_access_token({"sub": str(users["bob"])})
    resp = await client.post("/api/auth/refresh", json={"refresh_token": access})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_profile_reflects_current_roles(client, headers):
    me = (await client.get("/api/auth/me", headers=headers["bob"])).json()
    assert "user:IMPORT" in me["permissions"]
    assert "user:CREATE" not in me["permissions"]


# ── Route guard ────────────────────────────────────

@pytest.mark.asyncio
async def test_missing_token_is_401(client, users):
    resp = await client.get("/api/users")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_disabled_and_unknown_principals_are_401(client, headers):
    resp = await client.get("/api/auth/me", headers=headers["dave"])
    assert resp.status_code == 401
    assert _code(resp) == 2004

    ghost = {"Authorization": f"Bearer {create_access_token({'sub': str(uuid.uuid4())})}"}
    resp = await client.get("/api/auth/me", headers=ghost)
    assert resp.status_code == 401
    assert _code(resp) == 2005

    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert _code(resp) == 2001


@pytest.mark.asyncio
async def test_limited_admin_can_read_but_not_create_users(client, headers):
    assert (await client.get("/api/users", headers=headers["bob"])).status_code == 200

    resp = await client.post(
        "/api/users",
        headers=headers["bob"],
        json={"username": "mallory", "password": "password123"},
    )
    assert resp.status_code == 403
    assert _code(resp) == 2101


@pytest.mark.asyncio
async def test_user_without_roles_is_forbidden(client, headers):
    resp = await client.get("/api/roles", headers=headers["carol"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_role_change_applies_on_next_request(client, headers, users):
    admin_b = await _role_id(client, headers, "admin_b")
    assert (await client.get("/api/roles", headers=headers["carol"])).status_code == 403

    resp = await client.post(f"/api/users/{users['carol']}/roles/{admin_b}", headers=headers["alice"])
    assert resp.status_code == 200
    assert [r["name"] for r in resp.json()["roles"]] == ["admin_b"]

    assert (await client.get("/api/roles", headers=headers["carol"])).status_code == 200


def test_unknown_action_rejected_at_registration():
    with pytest.raises(ValueError):
        require_permission("FLY", "user")
    with pytest.raises(ValueError):
        require_any_permission()
    with pytest.raises(ValueError):
        require_any_permission(("READ", "user"), ("FLY", "user"))


@pytest.mark.asyncio
async def test_require_any_and_optional_authenticate(app, client, headers):
    @app.get("/probe/any", dependencies=[Depends(require_any_permission(("CREATE", "user"), ("READ", "role")))])
    async def probe_any():
        return {"ok": True}

    @app.get("/probe/optional")
    async def probe_optional(auth: AuthContext | None = Depends(optional_authenticate)):
        return {"user": auth.user.username if auth else None}

    assert (await client.get("/probe/any", headers=headers["bob"])).status_code == 200
    assert (await client.get("/probe/any", headers=headers["carol"])).status_code == 403

    assert (await client.get("/probe/optional")).json() == {"user": None}
    assert (await client.get("/probe/optional", headers=headers["carol"])).json() == {"user": "carol"}


# ── Menus ──────────────────────────────────────────

@pytest.mark.asyncio
async def test_menu_endpoint(client, headers):
    bob_menu = (await client.get("/api/menus", headers=headers["bob"])).json()
    assert [item["path"] for item in bob_menu] == [
        "/", "/users", "/roles", "/permissions", "/routes", "/tasks", "/chats", "/apps", "/settings",
    ]
    assert bob_menu[-1]["icon"] == "IconSettings"
    assert len(bob_menu[-1]["children"]) == 2

    assert (await client.get("/api/menus", headers=headers["carol"])).json() == []


@pytest.mark.asyncio
async def test_check_access_endpoint(client, headers):
    async def check(user, path):
        resp = await client.post("/api/menus/check", headers=headers[user], json={"path": path})
        assert resp.status_code == 200
        return resp.json()["has_access"]

    assert await check("bob", "/roles") is True
    assert await check("carol", "/roles") is False
    assert await check("alice", "/nowhere") is False


# ── Catalog CRUD ───────────────────────────────────

@pytest.mark.asyncio
async def test_system_role_cannot_be_edited(client, headers):
    admin_b = await _role_id(client, headers, "admin_b")
    resp = await client.put(f"/api/roles/{admin_b}", headers=headers["alice"], json={"display_name": "X"})
    assert resp.status_code == 400
    assert _code(resp) == 3101

    resp = await client.delete(f"/api/roles/{admin_b}", headers=headers["alice"])
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_role_lifecycle(client, headers):
    perms = (await client.get("/api/permissions", headers=headers["alice"])).json()
    user_read = next(p["id"] for p in perms if p["resource"] == "user" and p["action"] == "READ")

    resp = await client.post(
        "/api/roles",
        headers=headers["alice"],
        json={"name": "viewer", "display_name": "Viewer", "permission_ids": [user_read]},
    )
    assert resp.status_code == 201
    role = resp.json()
    assert [p["action"] for p in role["permissions"]] == ["READ"]
    assert role["user_count"] == 0

    dup = await client.post("/api/roles", headers=headers["alice"], json={"name": "viewer", "display_name": "V"})
    assert dup.status_code == 409
    assert dup.json()["detail"]["field"] == "name"

    resp = await client.put(f"/api/roles/{role['id']}", headers=headers["alice"], json={"permission_ids": []})
    assert resp.json()["permissions"] == []

    assert (await client.delete(f"/api/roles/{role['id']}", headers=headers["alice"])).status_code == 200


@pytest.mark.asyncio
async def test_permission_in_use_cannot_be_deleted(client, headers):
    perms = (await client.get("/api/permissions", headers=headers["alice"])).json()
    user_create = next(p["id"] for p in perms if p["resource"] == "user" and p["action"] == "CREATE")

    resp = await client.delete(f"/api/permissions/{user_create}", headers=headers["alice"])
    assert resp.status_code == 409
    assert _code(resp) == 4002


@pytest.mark.asyncio
async def test_route_tree_endpoint(client, headers):
    resp = await client.get("/api/routes", headers=headers["bob"])
    assert resp.status_code == 200
    tree = resp.json()
    settings_node = next(node for node in tree if node["path"] == "/settings")
    assert [c["name"] for c in settings_node["children"]] == ["settings-profile", "settings-appearance"]

    resp = await client.post(
        "/api/routes", headers=headers["bob"], json={"path": "/x", "name": "x", "title": "X"},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_batch_delete_users(client, headers, users):
    body = {"ids": [str(users["carol"]), str(users["dave"])]}

    resp = await client.post("/api/users/batch-delete", headers=headers["carol"], json=body)
    assert resp.status_code == 403

    resp = await client.post("/api/users/batch-delete", headers=headers["bob"], json=body)
    assert resp.status_code == 200
    assert resp.json() == {"count": 2}

    resp = await client.get(f"/api/users/{users['carol']}", headers=headers["bob"])
    assert resp.status_code == 404
