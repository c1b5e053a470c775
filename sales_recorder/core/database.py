"""
Database configuration and utilities.
"""
from datetime import datetime
from typing import Any, AsyncGenerator, Dict
import logging

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from sales_recorder.core.config import settings
from sales_recorder.models.base import Base

logger = logging.getLogger(__name__)


def create_engine_for(database_url: str, **kwargs: Any) -> AsyncEngine:
    """
    Create an async engine for the given URL.
    SQLite connections get foreign key enforcement switched on.
    """
    kwargs.setdefault("echo", settings.DEBUG)
    engine = create_async_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create an async session factory bound to the engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory(request: Request) -> async_sessionmaker:
    """Dependency returning the session factory owned by the running app."""
    return request.app.state.session_factory


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.
    Yields an async session and ensures it's closed after use.
    """
    session_factory = get_session_factory(request)
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}")
            raise


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables that do not exist yet.
    Should be called on application startup.
    """
    # Register every model on Base.metadata
    from sales_recorder import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def close_db(engine: AsyncEngine) -> None:
    """
    Close database connections.
    Should be called on application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")


async def health_check(session_factory: async_sessionmaker) -> Dict[str, Any]:
    """
    Perform database health check.
    Returns status and response time.
    """
    try:
        async with session_factory() as session:
            start_time = datetime.now()
            await session.execute(text("SELECT 1"))
            end_time = datetime.now()

        response_time = (end_time - start_time).total_seconds() * 1000
        return {
            "status": "healthy",
            "response_time_ms": round(response_time, 2),
        }
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "error": str(e),
            "response_time_ms": None,
        }
