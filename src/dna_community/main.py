"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dna_community.admin.router import router as admin_router
from dna_community.auth.router import router as auth_router
from dna_community.config import get_settings
from dna_community.database import close_db, init_db
from dna_community.health.router import router as health_router
from dna_community.middleware import setup_middleware
from dna_community.qa.router import router as qa_router
from dna_community.redis_client import close_redis, init_redis
from dna_community.rewards.router import router as rewards_router
from dna_community.social.notification_router import router as notifications_router
from dna_community.users.router import router as users_router
from dna_community.workshops.router import router as workshops_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="DNA Community API",
        description="Backend API for the DNA Community platform: workshops, Q&A, rewards and certificates",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(notifications_router)
    app.include_router(qa_router)
    app.include_router(workshops_router)
    app.include_router(rewards_router)
    app.include_router(admin_router)

    return app


app = create_app()
