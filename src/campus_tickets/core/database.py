"""
Database configuration and async session management
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from campus_tickets.core.config import settings
from campus_tickets.core.exceptions import StorageError

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection"""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases"""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo, future=True)
        enable_sqlite_foreign_keys(engine)
        return engine

    return create_async_engine(
        database_url,
        echo=echo,  # Log SQL queries in debug mode
        future=True,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Don't expire objects after commit
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI to provide database sessions.

    Usage:
        @router.get("/venues")
        async def list_venues(db: AsyncSession = Depends(get_db)):
            return await VenueService.list_venues(db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work in one transaction.

    Domain errors raised inside the block roll back and propagate unchanged;
    driver and constraint failures roll back and surface as StorageError.
    """
    try:
        async with db.begin():
            yield db
    except SQLAlchemyError as e:
        logger.error(f"Transaction failed during {operation}: {e}")
        raise StorageError(f"Storage failure during {operation}") from e


async def init_db(bind: AsyncEngine = engine):
    """
    Initialize database tables.
    Only for development - production schemas should be migrated explicitly.
    """
    async with bind.begin() as conn:
        # Import all models to register them with Base
        from campus_tickets.models import User, Venue, Event, Ticket  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def drop_db(bind: AsyncEngine = engine):
    """
    Drop all database tables.
    WARNING: Use only in development/testing!
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
