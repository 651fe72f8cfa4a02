"""
Wool Market Analytics - collection service entry point.

Receives tracker beacons from the public report viewer and stores them
as analytics sessions and events.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from wool_analytics.core.config import settings
from wool_analytics.core.database import close_db, init_db
from wool_analytics.core.logging import configure_logging, get_logger
from wool_analytics.core.rate_limit import RateLimiter
from wool_analytics.middleware import ErrorHandlerMiddleware, RequestContextMiddleware
from wool_analytics.routers import collect_router, health_router

# Configure logging before anything else
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    if settings.uses_default_salt and settings.environment == "production":
        logger.warning("IP_SALT is not set; IP hashes use the default salt")
    if settings.allow_any_origin:
        logger.warning("Accepting beacons from any origin")

    await init_db()

    if settings.sentry_dsn:
        import sentry_sdk

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.05,
            send_default_pii=False,
        )
        logger.info("Sentry initialized")

    yield

    logger.info("Shutting down application")
    await close_db()


def create_app() -> FastAPI:
    """
    Application factory function.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Self-hosted analytics collector for the wool market report",
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # One limiter per process; see core.rate_limit
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_period,
    )

    # Order matters - last added is outermost
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health_router)
    app.include_router(collect_router, prefix="/api")

    logger.info(
        "Application created",
        routes=len(app.routes),
        allowed_origins=len(settings.allowed_origins),
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wool_analytics.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
