"""
API routers package.
"""
from wool_analytics.routers.collect import router as collect_router
from wool_analytics.routers.health import router as health_router

__all__ = [
    "health_router",
    "collect_router",
]
