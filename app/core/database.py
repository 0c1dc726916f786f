"""
Database configuration and session management
Uses SQLAlchemy with async support
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.pool import NullPool
from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from .config import settings

logger = logging.getLogger(__name__)

def build_engine(database_url: str, null_pool: bool = False) -> AsyncEngine:
    """
    Create async engine for the given URL

    Every connection carries a bounded statement timeout so a slow store
    surfaces as an error instead of a hung request.
    """
    if database_url.startswith("sqlite"):
        # SQLite doesn't support connection pooling parameters
        return create_async_engine(
            database_url,
            echo=settings.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args={"timeout": settings.DATABASE_STATEMENT_TIMEOUT},
        )

    connect_args = {"command_timeout": settings.DATABASE_STATEMENT_TIMEOUT}

    # Worker tasks run each job on a fresh event loop
    if null_pool:
        return create_async_engine(
            database_url,
            echo=settings.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args=connect_args,
        )

    # PostgreSQL and other databases support pooling
    return create_async_engine(
        database_url,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,  # Verify connections before use
        connect_args=connect_args,
    )

engine = build_engine(settings.database_url_async)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Database dependency
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create and yield database session
    Ensures proper cleanup after use
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

async def init_db() -> None:
    """Initialize database tables"""
    from app.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
    logger.info("Database connections closed")

@asynccontextmanager
async def worker_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session on a throwaway engine for Celery tasks

    Each task runs on its own event loop, so pooled connections from the
    web engine cannot be shared with it.
    """
    task_engine = build_engine(settings.database_url_async, null_pool=True)
    session_factory = async_sessionmaker(task_engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as session:
            yield session
    finally:
        await task_engine.dispose()
