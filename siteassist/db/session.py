"""
Database session management with async support
"""
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
import logging

from siteassist.core.config import get_settings
from siteassist.db.base import Base

settings = get_settings()
logger = logging.getLogger(__name__)


_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

if _is_sqlite:
    engine = create_async_engine(
        settings.get_database_url(async_driver=True),
        echo=settings.DB_ECHO,
        poolclass=NullPool,
    )
else:
    engine = create_async_engine(
        settings.get_database_url(async_driver=True),
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        poolclass=AsyncAdaptedQueuePool,
    )

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """
    Create the key registry tables.
    Called on application startup when the database key store is selected.
    """
    try:
        async with engine.begin() as conn:
            # Register models with Base.metadata
            from siteassist.models.api_key import APIKeyRecord, KeyUsageRecord  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """
    Close database connections.
    Should be called on application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")


__all__ = ["init_db", "close_db", "AsyncSessionLocal", "engine"]
