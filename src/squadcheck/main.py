"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from squadcheck.checkins.background import get_background_jobs
from squadcheck.checkins.router import router as checkins_router
from squadcheck.config import get_settings
from squadcheck.database import close_db, create_schema, init_db
from squadcheck.gamification.router import router as gamification_router
from squadcheck.health.router import router as health_router
from squadcheck.middleware import setup_middleware
from squadcheck.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, settings.redis_max_connections)

    if settings.environment == "development":
        try:
            await create_schema()
        except Exception:
            logger.warning("Schema creation failed (run migrations instead)", exc_info=True)

    yield

    # Let in-flight post-check-in jobs finish before the pools go away.
    await get_background_jobs().drain()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SquadCheck API",
        description="Check-in periods, streaks and progression for group challenges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(checkins_router)
    app.include_router(gamification_router)

    return app


app = create_app()
