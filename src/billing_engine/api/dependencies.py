"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_engine.database import init_db


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory dependency (overridden in tests)."""
    _, factory = init_db()
    return factory


async def get_db_session(
    factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None
) -> UUID | None:
    """Extract the acting user ID from header, if present."""
    if not x_user_id:
        return None
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )


async def get_can_certify(
    x_can_certify: Annotated[str | None, Header()] = None
) -> bool:
    """Certifier permission as resolved by the host's authorization layer."""
    return (x_can_certify or "").strip().lower() in {"true", "1", "yes"}


def get_today() -> date:
    """Injected clock for certification dates."""
    return date.today()


# Type aliases for cleaner dependency injection
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
UserId = Annotated[UUID | None, Depends(get_user_id)]
CanCertify = Annotated[bool, Depends(get_can_certify)]
Today = Annotated[date, Depends(get_today)]
