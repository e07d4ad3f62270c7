"""
Database Infrastructure
=======================

Manages database connections, session lifecycle, and engine configuration.

Uses SQLAlchemy 2.0 with asyncpg for async PostgreSQL operations. A request
gets exactly one session; everything the request writes is committed
together when the handler returns, or rolled back if it raises.
"""

from typing import Any, AsyncGenerator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from inbox_routing.config import settings
from inbox_routing.core import RepositoryException


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If engine has not been initialized
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def init_database(database_url: str | None = None) -> AsyncEngine:
    """
    Initialize the database engine and session maker.

    Should be called during application startup.
    """
    global _engine, _session_maker

    # asyncpg understands ssl=, not the libpq sslmode= spelling
    url = (database_url or settings.database_url).replace("sslmode=", "ssl=")

    _engine = create_async_engine(
        url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )

    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    return _engine


async def close_database() -> None:
    """Dispose of pooled connections. Called during application shutdown."""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_maker = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for use with FastAPI's Depends().

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """
    Create all database tables.

    Development only; production schemas are managed by migrations.
    """
    # Import models so they register on Base.metadata
    from inbox_routing.conversations.infrastructure import models as _conversation_models  # noqa: F401
    from inbox_routing.routing.infrastructure import models as _routing_models  # noqa: F401
    from inbox_routing.sla.infrastructure import models as _sla_models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def is_uuid(value: Any) -> bool:
    """Whether ``value`` can be bound to a UUID column without a driver error."""
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def store_error(exc: SQLAlchemyError) -> RepositoryException:
    """Wrap a driver error; the store's own message becomes the error code."""
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    return RepositoryException(message.strip() or "store_error")
