"""
Pydantic schemas for request / response serialization.

Kept in a single file for now — split per-domain when it grows.
Schemas are deliberately decoupled from SQLAlchemy models so the
API surface can evolve independently of the DB layer.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.models.permission import PermissionAction
from app.models.user import UserStatus

RESOURCE_REGEX = r"^[a-z0-9_]+$"


# ── Auth ─────────────────────────────────────────────────────────────
class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_id: uuid.UUID
    roles: list[str]


class CurrentUserOut(BaseModel):
    id: uuid.UUID
    username: str
    email: str | None = None
    nickname: str | None = None
    status: UserStatus
    last_login: datetime | None = None
    login_count: int = 0
    roles: list[str] = []
    permissions: list[str] = []


# ── Permission ───────────────────────────────────────────────────────
class PermissionOut(BaseModel):
    id: uuid.UUID
    resource: str
    action: PermissionAction
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreatePermissionRequest(BaseModel):
    resource: str = Field(min_length=1, max_length=64, pattern=RESOURCE_REGEX)
    action: PermissionAction
    description: str | None = None


class UpdatePermissionRequest(BaseModel):
    resource: str | None = Field(default=None, min_length=1, max_length=64, pattern=RESOURCE_REGEX)
    action: PermissionAction | None = None
    description: str | None = None


class BatchCreatePermissionsRequest(BaseModel):
    permissions: list[CreatePermissionRequest] = Field(min_length=1)


class BatchPermissionResult(BaseModel):
    resource: str
    action: PermissionAction
    created: bool
    permission: PermissionOut | None = None
    reason: str | None = None


# ── Role ─────────────────────────────────────────────────────────────
class RoleOut(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    description: str | None = None
    is_system: bool
    permissions: list[PermissionOut] = []
    user_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class CreateRoleRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    display_name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    permission_ids: list[uuid.UUID] = []


class UpdateRoleRequest(BaseModel):
    """`name` is immutable and therefore absent."""

    display_name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    permission_ids: list[uuid.UUID] | None = None


# ── User ─────────────────────────────────────────────────────────────
class RoleBriefOut(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str

    model_config = {"from_attributes": True}


class UserOut(BaseModel):
    id: uuid.UUID
    username: str
    email: str | None = None
    nickname: str | None = None
    phone_number: str | None = None
    status: UserStatus
    last_login: datetime | None = None
    login_count: int = 0
    roles: list[RoleBriefOut] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListOut(BaseModel):
    items: list[UserOut]
    total: int
    page: int
    page_size: int


class CreateUserRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=8)
    email: EmailStr | None = None
    nickname: str | None = None
    phone_number: str | None = None
    status: UserStatus = UserStatus.ACTIVE
    role_ids: list[uuid.UUID] = []


class UpdateUserRequest(BaseModel):
    email: EmailStr | None = None
    nickname: str | None = None
    phone_number: str | None = None
    status: UserStatus | None = None
    role_ids: list[uuid.UUID] | None = None


class BatchDeleteUsersRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1)


class BatchDeleteOut(BaseModel):
    count: int


# ── Route ────────────────────────────────────────────────────────────
class RouteOut(BaseModel):
    id: uuid.UUID
    path: str
    name: str
    title: str
    component: str | None = None
    icon: str | None = None
    parent_id: uuid.UUID | None = None
    order: int
    hidden: bool
    permissions: list[PermissionOut] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class RouteTreeOut(RouteOut):
    children: list[RouteOut] = []


class CreateRouteRequest(BaseModel):
    path: str = Field(min_length=1, max_length=256)
    name: str = Field(min_length=1, max_length=128)
    title: str = Field(min_length=1, max_length=128)
    component: str | None = None
    icon: str | None = None
    parent_id: uuid.UUID | None = None
    order: int = 0
    hidden: bool = False
    permission_ids: list[uuid.UUID] = []


class UpdateRouteRequest(BaseModel):
    path: str | None = Field(default=None, min_length=1, max_length=256)
    name: str | None = Field(default=None, min_length=1, max_length=128)
    title: str | None = Field(default=None, min_length=1, max_length=128)
    component: str | None = None
    icon: str | None = None
    parent_id: uuid.UUID | None = None
    order: int | None = None
    hidden: bool | None = None
    permission_ids: list[uuid.UUID] | None = None


# ── Menu ─────────────────────────────────────────────────────────────
class MenuItemOut(BaseModel):
    id: uuid.UUID
    path: str
    name: str
    title: str
    icon: str | None = None
    order: int
    children: list[MenuItemOut] = []


class RouteAccessRequest(BaseModel):
    path: str


class RouteAccessOut(BaseModel):
    has_access: bool


# ── Generic ──────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    detail: str
