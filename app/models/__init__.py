"""
Models package — import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.permission import Permission, PermissionAction
from app.models.role import Role, role_permissions, route_permissions, user_roles
from app.models.route import Route
from app.models.user import User, UserStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Permission",
    "PermissionAction",
    "Role",
    "role_permissions",
    "route_permissions",
    "user_roles",
    "Route",
    "User",
    "UserStatus",
]
