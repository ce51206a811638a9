"""
Permission model.

A permission is one `(resource, action)` pair from the fixed action
vocabulary — e.g. `user:READ` or `route:MANAGE`.  Roles grant them and
routes require them; endpoint logic never checks role names.

`MANAGE` is the only action with implication semantics, and that rule
is applied at decision time (see `app.rbac.ability`), never expanded
into extra rows here.
"""

from __future__ import annotations

import enum
import re

from sqlalchemy import Enum, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

RESOURCE_PATTERN = re.compile(r"^[a-z0-9_]+$")


class PermissionAction(str, enum.Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MANAGE = "MANAGE"
    IMPORT = "IMPORT"
    EXPORT = "EXPORT"


class Permission(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
    )

    resource: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    action: Mapped[PermissionAction] = mapped_column(
        Enum(PermissionAction, name="permission_action"),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action.value}"

    def __repr__(self) -> str:
        return f"<Permission {self.key}>"
