"""
Database connection and session management.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.core.errors import Transient

settings = get_settings()
log = structlog.get_logger()

_pool_kwargs = {}
if not settings.database_url.startswith("sqlite"):
    # SQLite's static/singleton pools take no wait timeout
    _pool_kwargs["pool_timeout"] = settings.store_timeout_seconds

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    **_pool_kwargs,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables (development only)."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def store_errors(operation: str):
    """Surface store timeouts and dropped connections as ``Transient``.

    Integrity errors are left alone; callers that rely on unique indexes
    handle them themselves.
    """
    try:
        yield
    except (sa_exc.OperationalError, sa_exc.TimeoutError, asyncio.TimeoutError) as exc:
        log.warning("store.unavailable", operation=operation, error=str(exc))
        raise Transient(f"Store unavailable during {operation}") from exc
    except sa_exc.DBAPIError as exc:
        if not exc.connection_invalidated:
            raise
        log.warning("store.connection_lost", operation=operation, error=str(exc))
        raise Transient(f"Store connection lost during {operation}") from exc
