"""Reporting API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from billing_engine.api.dependencies import DbSession
from billing_engine.api.schemas import (
    PayApplicationResponse,
    PayAppStatusReportResponse,
    StatusSummaryResponse,
)
from billing_engine.services.pay_app_service import PayApplicationService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/pay-app-status", response_model=PayAppStatusReportResponse)
async def pay_app_status_report(
    db: DbSession,
    project_id: Annotated[UUID | None, Query()] = None,
    period_start: Annotated[date | None, Query()] = None,
    period_end: Annotated[date | None, Query()] = None,
) -> PayAppStatusReportResponse:
    """Pay applications whose period lies in the range, with status counts."""
    apps, summary = await PayApplicationService(db).status_report(
        project_id=project_id,
        period_start=period_start,
        period_end=period_end,
    )
    return PayAppStatusReportResponse(
        apps=[PayApplicationResponse.model_validate(p) for p in apps],
        summary=StatusSummaryResponse.model_validate(summary),
    )
