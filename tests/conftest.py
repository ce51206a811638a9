"""
Shared fixtures.

Every test gets its own SQLite file database with the schema created and
the default catalog seeded.  ``httpx.ASGITransport`` does not fire
startup events, so the seed runs here instead of on app startup.
"""

import uuid

import httpx
import pytest
import pytest_asyncio

from app.core.config import Settings
from app.core.security import create_access_token
from app.main import create_app
from app.models import Base, UserStatus
from app.rbac.permission_seed import seed
from app.services import role_service, user_service

PASSWORD = "correct-horse-battery"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        SEED_ON_STARTUP=False,
    )


@pytest_asyncio.fixture
async def app(test_settings):
    application = create_app(test_settings)
    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with application.state.session_factory() as session:
        await seed(session)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def db(app):
    async with app.state.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _make_user(app, username: str, role_names: list[str], status=UserStatus.ACTIVE) -> uuid.UUID:
    async with app.state.session_factory() as session:
        roles = [await role_service.get_role_by_name(name, session) for name in role_names]
        user = await user_service.create_user(
            username=username,
            password=PASSWORD,
            status=status,
            role_ids=[r.id for r in roles],
            db=session,
        )
        await session.commit()
        return user.id


@pytest_asyncio.fixture
async def users(app) -> dict[str, uuid.UUID]:
    """alice → admin_a, bob → admin_b, carol → no roles, dave → admin_a but suspended."""
    return {
        "alice": await _make_user(app, "alice", ["admin_a"]),
        "bob": await _make_user(app, "bob", ["admin_b"]),
        "carol": await _make_user(app, "carol", []),
        "dave": await _make_user(app, "dave", ["admin_a"], status=UserStatus.SUSPENDED),
    }


def bearer(user_id: uuid.UUID) -> dict[str, str]:
    token = create_access_token({"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(users) -> dict[str, dict[str, str]]:
    """Bearer headers keyed by username."""
    return {name: bearer(user_id) for name, user_id in users.items()}


@pytest.fixture
def password() -> str:
    return PASSWORD
