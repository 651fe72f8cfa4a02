"""
Health check endpoints for the hosting platform.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from wool_analytics.core.config import settings
from wool_analytics.core.database import DbSession, is_db_available

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root() -> dict:
    """Service identification."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@router.get("/health")
async def health_check() -> dict:
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": settings.app_version,
    }


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness probe. Does not touch dependencies."""
    return {"status": "alive", "timestamp": _now()}


@router.get("/health/ready")
async def readiness_check(db: DbSession, response: Response) -> dict:
    """
    Readiness probe.

    The collector is only useful with a reachable database, so an
    unavailable store reports 503.
    """
    if db is None or not is_db_available():
        database = "unavailable"
    else:
        try:
            await db.execute(text("SELECT 1"))
            database = "connected"
        except SQLAlchemyError as e:
            database = f"error: {e.__class__.__name__}"

    ready = database == "connected"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "not_ready",
        "checks": {"database": database},
        "timestamp": _now(),
    }
