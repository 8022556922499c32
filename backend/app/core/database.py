"""Database configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys enabled."""
    engine = create_async_engine(url, echo=echo, future=True)

    if url.startswith("sqlite"):

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Create async engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

# Create session factory
AsyncSessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


async def init_db() -> None:
    """Initialize database tables."""
    # Register models on Base.metadata before create_all
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        logger.info("Creating database tables")
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    logger.info("Closing database connections")
    await engine.dispose()


@asynccontextmanager
async def get_db_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Get a database session as a context manager."""
    session = (factory or AsyncSessionLocal)()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
