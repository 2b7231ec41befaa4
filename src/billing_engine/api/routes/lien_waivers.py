"""Lien waiver API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.api.dependencies import DbSession, SessionFactory
from billing_engine.api.schemas import ErrorResponse, LienWaiverCreate, LienWaiverResponse
from billing_engine.config import get_settings
from billing_engine.database import run_with_numbering_retry
from billing_engine.models import LienWaiver
from billing_engine.services.lien_waiver_service import LienWaiverService
from billing_engine.services.pay_app_service import PayApplicationService

router = APIRouter(prefix="/pay-apps/{pay_application_id}/lien-waivers", tags=["lien-waivers"])


@router.post(
    "",
    response_model=LienWaiverResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def record_lien_waiver(
    pay_application_id: UUID,
    payload: LienWaiverCreate,
    factory: SessionFactory,
) -> LienWaiverResponse:
    """Record a lien waiver; allowed at any status."""

    async def record(session: AsyncSession) -> LienWaiver:
        return await LienWaiverService(session).record(
            pay_application_id,
            waiver_type=payload.waiver_type,
            amount=payload.amount,
            through_date=payload.through_date,
            received_date=payload.received_date,
            notes=payload.notes,
            file_url=payload.file_url,
        )

    waiver = await run_with_numbering_retry(
        factory, record, get_settings().numbering_max_retries
    )
    return LienWaiverResponse.model_validate(waiver)


@router.get(
    "",
    response_model=list[LienWaiverResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_lien_waivers(
    pay_application_id: UUID,
    db: DbSession,
) -> list[LienWaiverResponse]:
    """List waivers in the order received."""
    await PayApplicationService(db).require_pay_application(pay_application_id)
    waivers = await LienWaiverService(db).list(pay_application_id)
    return [LienWaiverResponse.model_validate(w) for w in waivers]
