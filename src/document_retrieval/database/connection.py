"""Database engine and connection pool for PostgreSQL with pgvector."""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from document_retrieval.config import Settings, get_settings

logger = logging.getLogger(__name__)


def get_database_url(settings: Optional[Settings] = None) -> str:
    """Get the database URL, converting to async format if needed."""
    settings = settings or get_settings()
    db_url = settings.database.url

    # Convert postgresql:// to postgresql+asyncpg:// for async operations
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif db_url.startswith("postgresql+psycopg2://"):
        db_url = db_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)

    return db_url


def create_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Create and configure the SQLAlchemy async engine.

    The engine owns the connection pool. It is created by the process that
    starts the service and handed to a ``DataContext``; nothing in the
    package keeps a global reference to it.
    """
    settings = settings or get_settings()
    db_url = get_database_url(settings)

    pool_config = {
        "pool_size": settings.database.pool_size,
        "max_overflow": settings.database.max_overflow,
        "pool_timeout": settings.database.pool_timeout,
        "pool_recycle": settings.database.pool_recycle,
        "pool_pre_ping": True,  # Verify connections before using them
        "echo": settings.database.echo,
    }

    engine = create_async_engine(db_url, **pool_config)

    logger.info(
        f"Database engine created: pool_size={pool_config['pool_size']}, "
        f"max_overflow={pool_config['max_overflow']}"
    )

    return engine


async def check_connection(engine: AsyncEngine) -> bool:
    """Check if database connection is available."""
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            row = result.fetchone()
            return row is not None and row[0] == 1
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
