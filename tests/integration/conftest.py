"""Integration test fixtures: the API wired to the in-memory test database."""

from collections.abc import AsyncGenerator
from uuid import UUID, uuid4

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_engine.api.app import create_app
from billing_engine.api.dependencies import get_session_factory



@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app bound to the test database."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def api_project(client: AsyncClient) -> UUID:
    """Project with a single $100,000 SOV line at 10% retainage."""
    project_id = uuid4()
    response = await client.post(
        f"/api/v1/projects/{project_id}/sov",
        json={"description": "General conditions", "scheduled_value": "100000"},
    )
    assert response.status_code == 201
    return project_id


@pytest_asyncio.fixture
async def api_pay_app(client: AsyncClient, api_project: UUID) -> dict:
    """Draft pay application #1 created through the API."""
    response = await client.post(
        f"/api/v1/projects/{api_project}/pay-apps",
        json={
            "period_from": "2024-03-01",
            "period_to": "2024-03-31",
            "contractor_name": "Acme Builders",
        },
    )
    assert response.status_code == 201
    return response.json()
