"""
User controller — user management & role assignment.

Every route uses `Depends(require_permission(...))` for enforcement.
Assigning or revoking a role counts as updating the user.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import UserStatus
from app.rbac.dependencies import require_permission
from app.schemas import (
    BatchDeleteOut,
    BatchDeleteUsersRequest,
    CreateUserRequest,
    MessageResponse,
    UpdateUserRequest,
    UserListOut,
    UserOut,
)
from app.services import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get(
    "",
    response_model=UserListOut,
    dependencies=[Depends(require_permission("READ", "user"))],
)
async def list_users(
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    search: str | None = Query(None),
    status: UserStatus | None = Query(None),
    role_id: uuid.UUID | None = Query(None),
):
    users, total = await user_service.list_users(
        db, page=page, page_size=page_size, search=search, status=status, role_id=role_id,
    )
    return UserListOut(
        items=[UserOut.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{user_id}",
    response_model=UserOut,
    dependencies=[Depends(require_permission("READ", "user"))],
)
async def get_user(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user_by_id(user_id, db)
    return UserOut.model_validate(user)


@router.post(
    "",
    response_model=UserOut,
    status_code=201,
    dependencies=[Depends(require_permission("CREATE", "user"))],
)
async def create_user(body: CreateUserRequest, db: AsyncSession = Depends(get_db)):
    user = await user_service.create_user(
        username=body.username,
        password=body.password,
        email=body.email,
        nickname=body.nickname,
        phone_number=body.phone_number,
        status=body.status,
        role_ids=body.role_ids,
        db=db,
    )
    return UserOut.model_validate(user)


@router.put(
    "/{user_id}",
    response_model=UserOut,
    dependencies=[Depends(require_permission("UPDATE", "user"))],
)
async def update_user(
    user_id: uuid.UUID,
    body: UpdateUserRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_user(user_id, db, body.model_dump(exclude_unset=True))
    return UserOut.model_validate(user)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission("DELETE", "user"))],
)
async def delete_user(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await user_service.delete_user(user_id, db)
    return MessageResponse(detail="User deleted successfully")


@router.post(
    "/batch-delete",
    response_model=BatchDeleteOut,
    dependencies=[Depends(require_permission("DELETE", "user"))],
)
async def delete_users(body: BatchDeleteUsersRequest, db: AsyncSession = Depends(get_db)):
    """All-or-nothing: one unknown id rejects the whole batch."""
    count = await user_service.delete_users(body.ids, db)
    return BatchDeleteOut(count=count)


# ── Role assignment ──────────────────────────────────────────────────
@router.post(
    "/{user_id}/roles/{role_id}",
    response_model=UserOut,
    dependencies=[Depends(require_permission("UPDATE", "user"))],
)
async def assign_role(user_id: uuid.UUID, role_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    user = await user_service.assign_role(user_id, role_id, db)
    return UserOut.model_validate(user)


@router.delete(
    "/{user_id}/roles/{role_id}",
    response_model=UserOut,
    dependencies=[Depends(require_permission("UPDATE", "user"))],
)
async def revoke_role(user_id: uuid.UUID, role_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    user = await user_service.revoke_role(user_id, role_id, db)
    return UserOut.model_validate(user)
