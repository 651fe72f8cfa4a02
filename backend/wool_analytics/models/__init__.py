"""
SQLAlchemy models package.
All models are imported here for easy access and Alembic discovery.
"""
from wool_analytics.models.analytics import AnalyticsEvent, AnalyticsSession

__all__ = [
    "AnalyticsSession",
    "AnalyticsEvent",
]
