"""
Database Connection Management
Async SQLAlchemy engine for the claim and decision/audit store
Source: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
Verified: 2026-10-17
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from src.core.config import get_settings
from src.models import Base
from src.utils.logging import get_logger

logger = get_logger(__name__)


# Global engine instance, used when no engine is passed explicitly
_engine: AsyncEngine | None = None


def create_engine_for_url(url: str, echo: bool = False, testing: bool = False) -> AsyncEngine:
    """
    Build an async engine for a database URL.

    NullPool for tests, and pre-ping for pooled server databases.
    Source: https://docs.sqlalchemy.org/en/20/core/pooling.html
    """
    if testing:
        return create_async_engine(url, echo=echo, poolclass=NullPool)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def get_engine() -> AsyncEngine:
    """
    Get or create the global async engine.

    Returns:
        AsyncEngine instance
    """
    global _engine

    if _engine is None:
        settings = get_settings()
        logger.info(f"Creating database engine: {settings.DATABASE_URL.split('@')[-1]}")
        _engine = create_engine_for_url(
            settings.DATABASE_URL,
            echo=settings.DB_ECHO,
            testing=settings.is_testing,
        )
        logger.info("Database engine created successfully")

    return _engine


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def check_db_connection(engine: AsyncEngine | None = None) -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        engine = engine or get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
