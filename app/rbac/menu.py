"""
Menu projection — prune the route forest to what a principal may see.

Rules:
1. Hidden routes never appear, whatever the ability.
2. A route with no required permissions is visible to every
   authenticated principal; otherwise it is visible if the ability
   satisfies ANY one of its permissions (``MANAGE`` included).
3. Only two levels are projected: top-level routes and their direct
   children.  Deeper descendants are ignored.
4. Parent gates children: an invisible top-level route drops its whole
   branch, even children the principal could open directly.  A visible
   parent with no visible children is still kept.

Ordering is ``order`` ascending, then ``created_at`` as tie-break.

This is a navigation convenience, not an enforcement point — the route
guard is.  The parent-gating asymmetry with the guard is intentional
and kept as is.
"""

from collections.abc import Iterable, Sequence

from app.models.route import Route
from app.rbac.ability import Ability, Requirement, can_perform_any
from app.schemas import MenuItemOut


def route_requirements(route: Route) -> list[Requirement]:
    return [(permission.action, permission.resource) for permission in route.permissions]


def is_route_visible(route: Route, ability: Ability) -> bool:
    requirements = route_requirements(route)
    if not requirements:
        return True
    return can_perform_any(ability, requirements)


def sort_routes(routes: Iterable[Route]) -> list[Route]:
    return sorted(routes, key=lambda r: (r.order, r.created_at))


def _to_menu_item(route: Route, children: list[MenuItemOut] | None = None) -> MenuItemOut:
    return MenuItemOut(
        id=route.id,
        path=route.path,
        name=route.name,
        title=route.title,
        icon=route.icon,
        order=route.order,
        children=children or [],
    )


def project_menu(routes: Sequence[Route], ability: Ability) -> list[MenuItemOut]:
    """Build the visible menu tree from a flat list of routes."""
    shown = sort_routes(r for r in routes if not r.hidden)

    children_by_parent: dict = {}
    for route in shown:
        if route.parent_id is not None:
            children_by_parent.setdefault(route.parent_id, []).append(route)

    menu: list[MenuItemOut] = []
    for route in shown:
        if route.parent_id is not None:
            continue
        if not is_route_visible(route, ability):
            continue
        children = [
            _to_menu_item(child)
            for child in children_by_parent.get(route.id, [])
            if is_route_visible(child, ability)
        ]
        menu.append(_to_menu_item(route, children))
    return menu
