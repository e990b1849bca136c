"""
Database configuration and utilities for the CounselChat relay

Async SQLAlchemy engine (asyncpg for PostgreSQL, aiosqlite for SQLite)
holding the counselor relationship tables.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from counselchat.core.config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker] = None


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend"""
    settings = get_settings()

    if database_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.endswith("sqlite+aiosqlite://"):
            # One shared connection so every session sees the same in-memory database
            kwargs["poolclass"] = StaticPool
        return create_async_engine(database_url, echo=echo, **kwargs)

    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


def get_engine() -> AsyncEngine:
    """Get the process-wide engine, creating it from settings on first use"""
    global _engine, _session_maker
    if _engine is None:
        settings = get_settings()
        _engine = create_engine_for_url(settings.database_url, echo=settings.debug)
        _session_maker = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    return _engine


def get_session_maker() -> async_sessionmaker:
    """Get the session factory bound to the process-wide engine"""
    get_engine()
    return _session_maker


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session context manager"""
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database(database_url: Optional[str] = None) -> None:
    """Create the engine (optionally for an explicit URL) and all tables"""
    global _engine, _session_maker

    if database_url is not None:
        if _engine is not None:
            await _engine.dispose()
        _engine = create_engine_for_url(database_url)
        _session_maker = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)

    # Import models so they're registered with the Base metadata
    from counselchat.models import counselor  # noqa: F401

    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_database() -> None:
    """Dispose the engine and its connection pool"""
    global _engine, _session_maker
    if _engine is None:
        return
    try:
        await _engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")
    finally:
        _engine = None
        _session_maker = None


async def health_check() -> Dict[str, Any]:
    """Check database connection health"""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "healthy", "backend": get_engine().dialect.name}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": "connection failed"}
