"""
FastAPI application factory.

Assembles the app, registers all routers, and wires up lifecycle
events.  The engine and session factory live on ``app.state`` so tests
(and scripts) can build an app against any database they like.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from app.controllers.auth_controller import router as auth_router
from app.controllers.menu_controller import router as menu_router
from app.controllers.permission_controller import router as permission_router
from app.controllers.role_controller import router as role_router
from app.controllers.route_controller import router as route_router
from app.controllers.user_controller import router as user_router
from app.core.config import Settings, settings as default_settings
from app.core.database import build_engine, build_session_factory
from app.core.exceptions import ErrorCode
from app.models import Base  # noqa: F401 — ensures all models are registered

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # ── Register routers ─────────────────────────────────────────────
    app.include_router(auth_router)
    app.include_router(permission_router)
    app.include_router(role_router)
    app.include_router(user_router)
    app.include_router(route_router)
    app.include_router(menu_router)

    # ── Error handlers ───────────────────────────────────────────────
    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        """A uniqueness race the services' pre-checks could not see."""
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": {
                    "code": int(ErrorCode.RESOURCE_ALREADY_EXISTS),
                    "message": "Resource conflicts with existing data",
                }
            },
        )

    # ── Startup / Shutdown ───────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup() -> None:
        """Seed permissions, roles & routes on startup.

        NOTE: Database schema is managed by Alembic migrations.
        Run `alembic upgrade head` before starting the app.
        """
        if not settings.SEED_ON_STARTUP:
            return

        from app.rbac.permission_seed import seed

        async with app.state.session_factory() as session:
            await seed(session)
        logger.info("Permission seed complete.")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await app.state.engine.dispose()
        logger.info("Database engine disposed.")

    # ── Health check ─────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
