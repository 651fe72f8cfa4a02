"""
Database connection management with SQLAlchemy async.
Provides session dependency injection and connection pooling.

If the database cannot be reached at startup the service still boots;
the collection endpoint then answers 500 until it is restarted.
"""
import re
from collections.abc import AsyncGenerator
from typing import Annotated, Any, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from wool_analytics.core.config import settings
from wool_analytics.core.logging import get_logger

logger = get_logger(__name__)

_db_available: bool = False


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""
    pass


def create_engine() -> AsyncEngine:
    """Create async database engine with proper configuration."""
    database_url = settings.async_database_url

    sanitized = re.sub(r":([^:@/]+)@", ":***@", database_url)
    logger.info("Configuring database engine", url=sanitized)

    options: dict[str, Any] = {"echo": settings.database_echo}
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return create_async_engine(database_url, **options)


engine = create_engine()
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db_session() -> AsyncGenerator[Optional[AsyncSession], None]:
    """
    Dependency that provides a database session with automatic cleanup.

    Yields None when the database is not available so handlers can
    answer with a server error instead of failing inside the driver.
    """
    if not _db_available:
        yield None
        return

    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[Optional[AsyncSession], Depends(get_db_session)]


async def init_db() -> None:
    """Create the analytics tables if they do not exist yet."""
    global _db_available
    # Register models on the metadata before create_all
    import wool_analytics.models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        _db_available = True
        logger.info("Database initialized")
    except Exception as e:
        _db_available = False
        logger.error("Database connection failed - collection disabled", error=str(e))


def is_db_available() -> bool:
    """Check if database is available."""
    return _db_available


async def close_db() -> None:
    """Close database connections."""
    global _db_available
    await engine.dispose()
    _db_available = False
    logger.info("Database connections closed")
