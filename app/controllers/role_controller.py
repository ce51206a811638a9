"""
Role controller — CRUD over roles and their permission sets.

Controllers are THIN — they delegate to `role_service` and return
schemas.  System-role protection and in-use checks live in the service,
so they hold regardless of the caller's permissions.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.role import Role
from app.rbac.dependencies import require_permission
from app.schemas import CreateRoleRequest, MessageResponse, RoleOut, UpdateRoleRequest
from app.services import role_service

router = APIRouter(prefix="/api/roles", tags=["Roles"])


def _role_out(role: Role, user_count: int = 0) -> RoleOut:
    out = RoleOut.model_validate(role)
    out.permissions.sort(key=lambda p: (p.resource, p.action.value))
    out.user_count = user_count
    return out


@router.get(
    "",
    response_model=list[RoleOut],
    dependencies=[Depends(require_permission("READ", "role"))],
)
async def list_roles(db: AsyncSession = Depends(get_db)):
    roles = await role_service.list_roles(db)
    counts = await role_service.user_counts_by_role(db)
    return [_role_out(r, counts.get(r.id, 0)) for r in roles]


@router.get(
    "/{role_id}",
    response_model=RoleOut,
    dependencies=[Depends(require_permission("READ", "role"))],
)
async def get_role(role_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    role = await role_service.get_role(role_id, db)
    return _role_out(role, await role_service.count_role_users(role.id, db))


@router.post(
    "",
    response_model=RoleOut,
    status_code=201,
    dependencies=[Depends(require_permission("CREATE", "role"))],
)
async def create_role(body: CreateRoleRequest, db: AsyncSession = Depends(get_db)):
    role = await role_service.create_role(
        name=body.name,
        display_name=body.display_name,
        description=body.description,
        permission_ids=body.permission_ids,
        db=db,
    )
    return _role_out(role)


@router.put(
    "/{role_id}",
    response_model=RoleOut,
    dependencies=[Depends(require_permission("UPDATE", "role"))],
)
async def update_role(
    role_id: uuid.UUID,
    body: UpdateRoleRequest,
    db: AsyncSession = Depends(get_db),
):
    """`permission_ids`, when present, replaces the role's whole permission set."""
    role = await role_service.update_role(
        role_id,
        db,
        display_name=body.display_name,
        description=body.description,
        permission_ids=body.permission_ids,
    )
    return _role_out(role, await role_service.count_role_users(role.id, db))


@router.delete(
    "/{role_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission("DELETE", "role"))],
)
async def delete_role(role_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await role_service.delete_role(role_id, db)
    return MessageResponse(detail="Role deleted successfully")
