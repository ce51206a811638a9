"""Unit tests for menu projection over in-memory route stand-ins."""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.models.permission import PermissionAction
from app.rbac.menu import is_route_visible, project_menu

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _route(path, *, parent=None, order=0, hidden=False, requires=(), age=0):
    return SimpleNamespace(
        id=uuid.uuid4(),
        path=path,
        name=path.strip("/").replace("/", "-") or "root",
        title=path,
        icon=None,
        order=order,
        hidden=hidden,
        parent_id=parent.id if parent is not None else None,
        created_at=T0 + timedelta(seconds=age),
        permissions=[
            SimpleNamespace(resource=r, action=PermissionAction(a)) for r, a in requires
        ],
    )


def _paths(menu):
    return [item.path for item in menu]


def test_route_without_permissions_is_public():
    assert is_route_visible(_route("/open"), frozenset())


def test_any_one_permission_suffices():
    route = _route("/x", requires=[("user", "READ"), ("role", "READ")])
    assert is_route_visible(route, frozenset({"role:READ"}))
    assert not is_route_visible(route, frozenset({"role:UPDATE"}))


def test_manage_satisfies_route_requirement():
    route = _route("/routes", requires=[("route", "READ")])
    assert is_route_visible(route, frozenset({"route:MANAGE"}))


def test_hidden_routes_never_appear():
    visible = _route("/a")
    hidden = _route("/b", hidden=True)
    menu = project_menu([visible, hidden], frozenset({"user:MANAGE"}))
    assert _paths(menu) == ["/a"]


def test_order_then_created_at():
    late = _route("/late", order=1, age=10)
    early = _route("/early", order=1, age=0)
    first = _route("/first", order=0, age=20)
    menu = project_menu([late, early, first], frozenset())
    assert _paths(menu) == ["/first", "/early", "/late"]


def test_invisible_parent_hides_public_children():
    parent = _route("/settings", requires=[("settings", "READ")])
    child = _route("/settings/profile", parent=parent)
    assert project_menu([parent, child], frozenset()) == []


def test_visible_parent_filters_children_and_survives_empty():
    parent = _route("/admin")
    secret = _route("/admin/secret", parent=parent, requires=[("user", "DELETE")])
    menu = project_menu([parent, secret], frozenset({"user:READ"}))
    assert _paths(menu) == ["/admin"]
    assert menu[0].children == []


def test_only_two_levels_are_projected():
    top = _route("/top")
    child = _route("/top/child", parent=top)
    grandchild = _route("/top/child/deep", parent=child)
    menu = project_menu([top, child, grandchild], frozenset())
    assert _paths(menu) == ["/top"]
    assert _paths(menu[0].children) == ["/top/child"]
    assert menu[0].children[0].children == []


def test_children_are_ordered():
    parent = _route("/settings")
    second = _route("/settings/appearance", parent=parent, order=1)
    first = _route("/settings/", parent=parent, order=0)
    menu = project_menu([parent, second, first], frozenset())
    assert _paths(menu[0].children) == ["/settings/", "/settings/appearance"]
