"""
Database engine & per-request session.

The engine and session factory are built once by the application
factory and stored on ``app.state``.  Nothing here is a module-level
singleton: every caller receives its session explicitly, either via the
``get_db`` dependency or by opening one from the factory it was handed.
"""

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.DATABASE_URL, echo=False, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency — one session (and one transaction) per request.

    Services only ``flush()``; the commit happens here once the handler
    returns, so a failed request never leaves a partial write behind.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
