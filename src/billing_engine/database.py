"""Database connection and session management."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from billing_engine.config import get_settings
from billing_engine.errors import NumberingConflictError
from billing_engine.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async database engine."""
    url = database_url or get_settings().database_url
    kwargs: dict[str, object] = {"echo": False, "pool_pre_ping": True}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=10, max_overflow=20)
    return create_async_engine(url, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the settings every service relies on."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None or _session_factory is None:
        _engine = get_engine()
        _session_factory = make_session_factory(_engine)
    return _engine, _session_factory


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables (development and tests)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)



async def run_with_numbering_retry(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
    max_attempts: int,
) -> T:
    """Run ``operation`` in its own committed session, retrying number conflicts.

    Each attempt gets a fresh session so the next number is recomputed from
    committed state.
    """
    attempt = 1
    while True:
        async with session_factory() as session:
            try:
                result = await operation(session)
                await session.commit()
                return result
            except NumberingConflictError:
                await session.rollback()
                if attempt >= max_attempts:
                    raise
                logger.warning(
                    "Numbering conflict on attempt %d/%d, retrying", attempt, max_attempts
                )
        attempt += 1
