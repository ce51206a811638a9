"""
One-time bootstrap script — creates the first administrator.

Usage:
    python -m app.scripts.create_admin

The new user is bound to the ``admin_a`` system role, which must have
been seeded first (start the app once, or run
``python -m app.rbac.permission_seed``).
"""

import asyncio
import getpass
import uuid

from sqlalchemy import select

from app.core.config import settings
from app.core.database import build_engine, build_session_factory
from app.core.security import hash_password
from app.models.role import Role
from app.models.user import User, UserStatus

ADMIN_ROLE = "admin_a"


async def create_admin() -> None:
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    async with session_factory() as session:
        # ── Collect input ────────────────────────────────────────────
        print(f"\n{settings.APP_NAME}: First Admin Setup\n")
        username = input("  Username:  ").strip()
        email = input("  Email (optional): ").strip() or None
        password = getpass.getpass("  Password:  ")
        confirm = getpass.getpass("  Confirm:   ")

        if password != confirm:
            print("\nPasswords do not match.")
            await engine.dispose()
            return

        if not username or len(password) < 8:
            print("\nUsername is required and the password needs at least 8 characters.")
            await engine.dispose()
            return

        # ── Check for existing user ──────────────────────────────────
        existing = (
            await session.execute(select(User).where(User.username == username))
        ).scalar_one_or_none()

        if existing:
            print(f"\nUser '{username}' already exists.")
            await engine.dispose()
            return

        # ── Find the super-admin role (must be seeded first) ─────────
        admin_role = (
            await session.execute(select(Role).where(Role.name == ADMIN_ROLE))
        ).scalar_one_or_none()

        if admin_role is None:
            print(f"\nRole '{ADMIN_ROLE}' not found. Start the app once first so")
            print("permissions & roles get seeded, then re-run this script.")
            await engine.dispose()
            return

        # ── Create the admin user ────────────────────────────────────
        admin_user = User(
            id=uuid.uuid4(),
            username=username,
            email=email,
            password_hash=hash_password(password),
            nickname=username,
            status=UserStatus.ACTIVE,
            roles=[admin_role],
        )
        session.add(admin_user)
        await session.commit()

        print("\nAdmin user created successfully!")
        print(f"    ID:       {admin_user.id}")
        print(f"    Username: {admin_user.username}")
        print(f"    Role:     {ADMIN_ROLE}")
        print("\n   You can now log in via POST /api/auth/login\n")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_admin())
