"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from phishguard.auth.router import router as auth_router
from phishguard.cache import close_redis, init_redis
from phishguard.config import get_settings
from phishguard.database import close_db, init_db
from phishguard.health.router import router as health_router
from phishguard.middleware import setup_middleware
from phishguard.notifications.push import close_push_client, init_push_client
from phishguard.notifications.router import router as notifications_router
from phishguard.phishing.router import router as phishing_router
from phishguard.phishing.scanner import close_scanner, init_scanner
from phishguard.trust.router import router as trust_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store, cache, scanner and push clients; close them on shutdown."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    await init_scanner(settings.scanner_url, settings.scanner_api_key, settings.scanner_timeout_seconds)
    await init_push_client(settings.expo_push_url, settings.expo_access_token, settings.push_timeout_seconds)
    logger.info("startup_complete", environment=settings.environment)

    yield

    await close_push_client()
    await close_scanner()
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="phishguard API",
        description="Phishing verdicts with trusted-contact alerts",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(trust_router)
    app.include_router(notifications_router)
    app.include_router(phishing_router)

    return app


app = create_app()
