"""
Permission controller — the `(resource, action)` catalog.

Listing is open to any authenticated user (the role editor needs it);
everything else is gated on the `permission` resource.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.rbac.dependencies import authenticate, require_permission
from app.schemas import (
    BatchCreatePermissionsRequest,
    BatchPermissionResult,
    CreatePermissionRequest,
    MessageResponse,
    PermissionOut,
    UpdatePermissionRequest,
)
from app.services import permission_service

router = APIRouter(prefix="/api/permissions", tags=["Permissions"])


@router.get("", response_model=list[PermissionOut], dependencies=[Depends(authenticate)])
async def list_permissions(db: AsyncSession = Depends(get_db)):
    permissions = await permission_service.list_permissions(db)
    return [PermissionOut.model_validate(p) for p in permissions]


@router.get(
    "/grouped",
    response_model=dict[str, list[PermissionOut]],
    dependencies=[Depends(authenticate)],
)
async def list_permissions_grouped(db: AsyncSession = Depends(get_db)):
    grouped = await permission_service.group_by_resource(db)
    return {
        resource: [PermissionOut.model_validate(p) for p in perms]
        for resource, perms in grouped.items()
    }


@router.get(
    "/{permission_id}",
    response_model=PermissionOut,
    dependencies=[Depends(require_permission("READ", "permission"))],
)
async def get_permission(permission_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    permission = await permission_service.get_permission(permission_id, db)
    return PermissionOut.model_validate(permission)


@router.post(
    "",
    response_model=PermissionOut,
    status_code=201,
    dependencies=[Depends(require_permission("CREATE", "permission"))],
)
async def create_permission(body: CreatePermissionRequest, db: AsyncSession = Depends(get_db)):
    permission = await permission_service.create_permission(
        resource=body.resource,
        action=body.action,
        description=body.description,
        db=db,
    )
    return PermissionOut.model_validate(permission)


@router.post(
    "/batch",
    response_model=list[BatchPermissionResult],
    status_code=201,
    dependencies=[Depends(require_permission("CREATE", "permission"))],
)
async def create_permissions_batch(
    body: BatchCreatePermissionsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create many permissions at once; existing pairs are reported as skipped."""
    results = await permission_service.create_permissions_batch(
        [item.model_dump() for item in body.permissions], db,
    )
    return [
        BatchPermissionResult(
            resource=r["resource"],
            action=r["action"],
            created=r["created"],
            permission=PermissionOut.model_validate(r["permission"]) if r.get("permission") else None,
            reason=r.get("reason"),
        )
        for r in results
    ]


@router.put(
    "/{permission_id}",
    response_model=PermissionOut,
    dependencies=[Depends(require_permission("UPDATE", "permission"))],
)
async def update_permission(
    permission_id: uuid.UUID,
    body: UpdatePermissionRequest,
    db: AsyncSession = Depends(get_db),
):
    permission = await permission_service.update_permission(
        permission_id,
        db,
        resource=body.resource,
        action=body.action,
        description=body.description,
    )
    return PermissionOut.model_validate(permission)


@router.delete(
    "/{permission_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission("DELETE", "permission"))],
)
async def delete_permission(permission_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await permission_service.delete_permission(permission_id, db)
    return MessageResponse(detail="Permission deleted successfully")
