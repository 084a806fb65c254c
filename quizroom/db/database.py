"""
Database Module

Async SQLAlchemy engine, session factory and declarative Base.

Every request gets its own AsyncSession through the get_db dependency;
there is no other long-lived state in the process.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from quizroom.core.config import settings

logger = logging.getLogger(__name__)


def _to_async_url(url: str) -> str:
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_kwargs() -> dict:
    kwargs = {"echo": settings.SQLALCHEMY_ECHO, "pool_pre_ping": True}
    if settings.DB_POOL_MIN_SIZE is not None:
        kwargs["pool_size"] = settings.DB_POOL_MIN_SIZE
    if settings.DB_POOL_MAX_SIZE is not None and settings.DB_POOL_MIN_SIZE is not None:
        kwargs["max_overflow"] = max(0, settings.DB_POOL_MAX_SIZE - settings.DB_POOL_MIN_SIZE)
    return kwargs


engine = create_async_engine(_to_async_url(settings.DATABASE_URL), **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields a database session per request.

    Usage in FastAPI endpoints:
        @router.get("/")
        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_db_connection() -> bool:
    """Run a trivial query to confirm the database is reachable."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
