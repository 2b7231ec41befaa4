"""Service health endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.api.dependencies import DbSession
from billing_engine.config import get_settings
from billing_engine.models import PayApplication

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class ServiceStatus(BaseModel):
    """Billing engine status as seen by monitoring."""

    status: str
    checked_at: datetime
    engine_version: str
    database: str
    schema_ready: bool


async def _database_status(db: AsyncSession) -> tuple[str, bool]:
    """Connectivity plus whether the billing tables are reachable."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database connectivity check failed", exc_info=True)
        return "unreachable", False
    try:
        await db.scalar(select(func.count()).select_from(PayApplication))
    except SQLAlchemyError:
        logger.warning("Billing schema is not available", exc_info=True)
        return "connected", False
    return "connected", True


@router.get("/health", response_model=ServiceStatus)
async def health_check(db: DbSession) -> ServiceStatus:
    """Report database connectivity and schema availability."""
    database, schema_ready = await _database_status(db)
    return ServiceStatus(
        status="healthy" if schema_ready else "degraded",
        checked_at=datetime.now(timezone.utc),
        engine_version=get_settings().engine_version,
        database=database,
        schema_ready=schema_ready,
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready only once the billing schema can be queried."""
    _, schema_ready = await _database_status(db)
    if not schema_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """Process is up; no dependencies are checked."""
    return {"status": "alive"}
