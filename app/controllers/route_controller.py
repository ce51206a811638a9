"""
Route controller — manage the navigation catalog.

Every route is gated on the `route` resource.  The tree view returns
top-level routes with their direct children only.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.route import Route
from app.rbac.dependencies import require_permission
from app.schemas import (
    CreateRouteRequest,
    MessageResponse,
    RouteOut,
    RouteTreeOut,
    UpdateRouteRequest,
)
from app.services import route_service

router = APIRouter(prefix="/api/routes", tags=["Routes"])


def _route_out(route: Route) -> RouteOut:
    return RouteOut.model_validate(route)


@router.get(
    "",
    response_model=list[RouteTreeOut],
    dependencies=[Depends(require_permission("READ", "route"))],
)
async def list_route_tree(db: AsyncSession = Depends(get_db)):
    tree = await route_service.list_route_tree(db)
    return [
        RouteTreeOut(
            **_route_out(parent).model_dump(),
            children=[_route_out(child) for child in children],
        )
        for parent, children in tree
    ]


@router.get(
    "/flat",
    response_model=list[RouteOut],
    dependencies=[Depends(require_permission("READ", "route"))],
)
async def list_routes_flat(db: AsyncSession = Depends(get_db)):
    routes = await route_service.list_routes_flat(db)
    return [_route_out(r) for r in routes]


@router.get(
    "/{route_id}",
    response_model=RouteOut,
    dependencies=[Depends(require_permission("READ", "route"))],
)
async def get_route(route_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return _route_out(await route_service.get_route(route_id, db))


@router.post(
    "",
    response_model=RouteOut,
    status_code=201,
    dependencies=[Depends(require_permission("CREATE", "route"))],
)
async def create_route(body: CreateRouteRequest, db: AsyncSession = Depends(get_db)):
    route = await route_service.create_route(
        path=body.path,
        name=body.name,
        title=body.title,
        component=body.component,
        icon=body.icon,
        parent_id=body.parent_id,
        order=body.order,
        hidden=body.hidden,
        permission_ids=body.permission_ids,
        db=db,
    )
    return _route_out(route)


@router.put(
    "/{route_id}",
    response_model=RouteOut,
    dependencies=[Depends(require_permission("UPDATE", "route"))],
)
async def update_route(
    route_id: uuid.UUID,
    body: UpdateRouteRequest,
    db: AsyncSession = Depends(get_db),
):
    route = await route_service.update_route(route_id, db, body.model_dump(exclude_unset=True))
    return _route_out(route)


@router.delete(
    "/{route_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission("DELETE", "route"))],
)
async def delete_route(route_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await route_service.delete_route(route_id, db)
    return MessageResponse(detail="Route deleted successfully")
