"""
Database connection management.
Handles async SQLAlchemy engine creation.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from pgqueue.config import get_settings

logger = logging.getLogger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create an async database engine from settings.

    Args:
        database_url: Optional URL overriding the configured one.

    Returns:
        AsyncEngine: A new SQLAlchemy async engine.
    """
    settings = get_settings()
    return create_async_engine(
        database_url or settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.log_level == "DEBUG",
        pool_pre_ping=True,
    )


def get_engine() -> AsyncEngine:
    """
    Get or create the process-wide async database engine.

    Returns:
        AsyncEngine: The SQLAlchemy async engine instance.
    """
    global _engine
    if _engine is None:
        _engine = create_engine()
        logger.info("Database engine created")
    return _engine


def get_test_engine(database_url: str) -> AsyncEngine:
    """
    Create a test database engine with NullPool.

    Every claim holds its own connection, so tests running many concurrent
    claims must not be capped by a pool size.

    Args:
        database_url: The database URL for testing.

    Returns:
        AsyncEngine: The test SQLAlchemy async engine instance.
    """
    return create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=False,
    )


async def close_db() -> None:
    """
    Dispose the process-wide engine.
    Should be called on application shutdown.
    """
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Database connection closed")
