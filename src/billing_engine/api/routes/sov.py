"""Schedule of Values API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.api.dependencies import DbSession, SessionFactory
from billing_engine.api.schemas import (
    ErrorResponse,
    SOVLineItemCreate,
    SOVLineItemResponse,
    SOVSummaryResponse,
)
from billing_engine.config import get_settings
from billing_engine.database import run_with_numbering_retry
from billing_engine.models import SOVLineItem
from billing_engine.services.sov_service import ScheduleOfValuesService

router = APIRouter(prefix="/projects/{project_id}/sov", tags=["sov"])


@router.post(
    "",
    response_model=SOVLineItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_sov_line_item(
    project_id: UUID,
    payload: SOVLineItemCreate,
    factory: SessionFactory,
) -> SOVLineItemResponse:
    """Append a line item with the next item number."""

    async def add(session: AsyncSession) -> SOVLineItem:
        return await ScheduleOfValuesService(session).add_line_item(
            project_id,
            description=payload.description,
            scheduled_value=payload.scheduled_value,
            retainage_pct=payload.retainage_pct,
        )

    item = await run_with_numbering_retry(
        factory, add, get_settings().numbering_max_retries
    )
    return SOVLineItemResponse.model_validate(item)


@router.get("", response_model=list[SOVLineItemResponse])
async def list_sov_line_items(
    project_id: UUID,
    db: DbSession,
) -> list[SOVLineItemResponse]:
    """List the project's SOV in item-number order."""
    items = await ScheduleOfValuesService(db).list_items(project_id)
    return [SOVLineItemResponse.model_validate(item) for item in items]


@router.get("/summary", response_model=SOVSummaryResponse)
async def get_sov_summary(
    project_id: UUID,
    db: DbSession,
) -> SOVSummaryResponse:
    """Total contract value and value-weighted retainage."""
    summary = await ScheduleOfValuesService(db).summarize(project_id)
    return SOVSummaryResponse.model_validate(summary)
