"""
Core package containing configuration, database, logging and rate limiting.
"""
from wool_analytics.core.config import settings
from wool_analytics.core.database import Base, DbSession, get_db_session
from wool_analytics.core.logging import configure_logging, get_logger
from wool_analytics.core.rate_limit import RateLimitDecision, RateLimiter

__all__ = [
    "settings",
    "Base",
    "DbSession",
    "get_db_session",
    "configure_logging",
    "get_logger",
    "RateLimiter",
    "RateLimitDecision",
]
