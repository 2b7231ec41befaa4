"""Pytest fixtures for billing engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from billing_engine.database import make_session_factory
from billing_engine.models import Base, PayApplication, SOVLineItem
from billing_engine.services.pay_app_service import PayApplicationService
from billing_engine.services.sov_service import ScheduleOfValuesService

# In-memory SQLite shared across connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def project_id() -> UUID:
    return uuid4()


@pytest.fixture
async def single_item_sov(session: AsyncSession, project_id: UUID) -> SOVLineItem:
    """One $100,000 item at 10% retainage."""
    item = await ScheduleOfValuesService(session).add_line_item(
        project_id,
        description="General conditions",
        scheduled_value=Decimal("100000"),
        retainage_pct=Decimal("10"),
    )
    await session.commit()
    return item


@pytest.fixture
async def draft_pay_app(
    session: AsyncSession, project_id: UUID, single_item_sov: SOVLineItem
) -> PayApplication:
    """Pay application #1 for March 2024."""
    pay_app = await PayApplicationService(session).create_pay_application(
        project_id,
        period_from=date(2024, 3, 1),
        period_to=date(2024, 3, 31),
        contractor_name="Acme Builders",
    )
    await session.commit()
    return pay_app
