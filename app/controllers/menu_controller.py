"""
Menu controller — the caller's navigation and ad-hoc route checks.

Both endpoints only require authentication; what comes back is already
filtered by the caller's ability.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.rbac.dependencies import AuthContext, authenticate
from app.schemas import MenuItemOut, RouteAccessOut, RouteAccessRequest
from app.services import menu_service

router = APIRouter(prefix="/api/menus", tags=["Menus"])


@router.get("", response_model=list[MenuItemOut])
async def get_my_menu(
    auth: AuthContext = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    return await menu_service.get_menu_for_principal(auth.user_id, db)


@router.post("/check", response_model=RouteAccessOut)
async def check_route_access(
    body: RouteAccessRequest,
    auth: AuthContext = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
):
    """Unknown and forbidden paths both answer `has_access: false`."""
    has_access = await menu_service.check_access(auth.user_id, body.path, db)
    return RouteAccessOut(has_access=has_access)
