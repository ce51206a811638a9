"""
Route model — one navigable page of the admin console.

- `parent_id` is a self-reference; only one level of nesting is
  meaningful (the menu projector never looks below direct children).
- An empty `permissions` set means "any logged-in user"; a non-empty
  set means "holds at least one of these" (OR, not AND).
- `hidden` routes are registered for the guard but never shown in a menu.

Children are deliberately not mapped as a relationship: trees are
assembled from the flat, ordered list in one query.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.role import route_permissions  # association table

if TYPE_CHECKING:
    from app.models.permission import Permission


class Route(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "routes"

    path: Mapped[str] = mapped_column(String(256), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    component: Mapped[str | None] = mapped_column(String(256), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("routes.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # ── Relationships ────────────────────────────────────────────────
    permissions: Mapped[list["Permission"]] = relationship(  # noqa: F821
        secondary=route_permissions,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Route {self.path}>"
