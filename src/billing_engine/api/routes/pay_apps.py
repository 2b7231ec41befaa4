"""Pay application API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.api.dependencies import (
    CanCertify,
    DbSession,
    SessionFactory,
    Today,
    UserId,
)
from billing_engine.api.schemas import (
    ErrorResponse,
    G702Request,
    G702Response,
    LineItemUpdate,
    PayAppLineItemResponse,
    PayApplicationCreate,
    PayApplicationResponse,
    PayApplicationUpdate,
    PayAppTotalsResponse,
    TransitionRequest,
    TransitionResponse,
)
from billing_engine.config import get_settings
from billing_engine.database import run_with_numbering_retry
from billing_engine.models import PayApplication
from billing_engine.money import Money
from billing_engine.services.pay_app_service import PayApplicationService

router = APIRouter(tags=["pay-apps"])


# ============================================================================
# Pay Application CRUD
# ============================================================================


@router.post(
    "/projects/{project_id}/pay-apps",
    response_model=PayApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_pay_application(
    project_id: UUID,
    payload: PayApplicationCreate,
    factory: SessionFactory,
) -> PayApplicationResponse:
    """Create the next pay application in draft, carrying forward prior work."""

    async def create(session: AsyncSession) -> PayApplication:
        return await PayApplicationService(session).create_pay_application(
            project_id,
            period_from=payload.period_from,
            period_to=payload.period_to,
            contractor_name=payload.contractor_name,
            contract_number=payload.contract_number,
            contractor_id=payload.contractor_id,
        )

    pay_app = await run_with_numbering_retry(
        factory, create, get_settings().numbering_max_retries
    )
    return PayApplicationResponse.model_validate(pay_app)


@router.get(
    "/projects/{project_id}/pay-apps",
    response_model=list[PayApplicationResponse],
)
async def list_pay_applications(
    project_id: UUID,
    db: DbSession,
) -> list[PayApplicationResponse]:
    """List a project's pay applications by number."""
    pay_apps = await PayApplicationService(db).list_pay_applications(project_id)
    return [PayApplicationResponse.model_validate(p) for p in pay_apps]


@router.get(
    "/pay-apps/{pay_application_id}",
    response_model=PayApplicationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_pay_application(
    pay_application_id: UUID,
    db: DbSession,
) -> PayApplicationResponse:
    """Get pay application details."""
    pay_app = await PayApplicationService(db).require_pay_application(pay_application_id)
    return PayApplicationResponse.model_validate(pay_app)


@router.patch(
    "/pay-apps/{pay_application_id}",
    response_model=PayApplicationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_pay_application(
    pay_application_id: UUID,
    payload: PayApplicationUpdate,
    db: DbSession,
) -> PayApplicationResponse:
    """Edit contractor and contract header fields."""
    pay_app = await PayApplicationService(db).update_details(
        pay_application_id,
        contractor_name=payload.contractor_name,
        contract_number=payload.contract_number,
        notes=payload.notes,
    )
    await db.commit()
    return PayApplicationResponse.model_validate(pay_app)


# ============================================================================
# Line Items
# ============================================================================


@router.get(
    "/pay-apps/{pay_application_id}/line-items",
    response_model=list[PayAppLineItemResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_line_items(
    pay_application_id: UUID,
    db: DbSession,
) -> list[PayAppLineItemResponse]:
    """List G703 rows in SOV item-number order."""
    service = PayApplicationService(db)
    await service.require_pay_application(pay_application_id)
    lines = await service.get_line_items(pay_application_id)
    return [PayAppLineItemResponse.model_validate(line) for line in lines]


@router.patch(
    "/pay-apps/{pay_application_id}/line-items/{line_item_id}",
    response_model=PayAppLineItemResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def update_line_item(
    pay_application_id: UUID,
    line_item_id: UUID,
    payload: LineItemUpdate,
    db: DbSession,
    can_certify: CanCertify,
) -> PayAppLineItemResponse:
    """Replace one editable field of a line item."""
    line = await PayApplicationService(db).update_line_item(
        pay_application_id,
        line_item_id,
        payload.field,
        payload.value,
        can_certify=can_certify,
    )
    await db.commit()
    return PayAppLineItemResponse.model_validate(line)


# ============================================================================
# Workflow
# ============================================================================


@router.post(
    "/pay-apps/{pay_application_id}/transitions",
    response_model=TransitionResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def transition_pay_application(
    pay_application_id: UUID,
    payload: TransitionRequest,
    db: DbSession,
    user_id: UserId,
    can_certify: CanCertify,
    today: Today,
) -> TransitionResponse:
    """Move a pay application through the certification workflow.

    Certifying without lien waivers succeeds with a warning in the response.
    """
    result = await PayApplicationService(db).transition(
        pay_application_id,
        payload.to_status,
        can_certify=can_certify,
        today=today,
        actor_user_id=user_id,
        dispute_notes=payload.dispute_notes,
    )
    await db.commit()
    return TransitionResponse(
        pay_application=PayApplicationResponse.model_validate(result.pay_application),
        from_status=result.from_status,
        to_status=result.to_status,
        warnings=result.warnings,
    )


# ============================================================================
# Totals
# ============================================================================


@router.get(
    "/pay-apps/{pay_application_id}/totals",
    response_model=PayAppTotalsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_totals(
    pay_application_id: UUID,
    db: DbSession,
) -> PayAppTotalsResponse:
    """G703 column totals, recomputed on every request."""
    totals = await PayApplicationService(db).compute_totals(pay_application_id)
    return PayAppTotalsResponse.model_validate(totals)


@router.post(
    "/pay-apps/{pay_application_id}/g702",
    response_model=G702Response,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_g702_summary(
    pay_application_id: UUID,
    payload: G702Request,
    db: DbSession,
) -> G702Response:
    """G702 certificate figures for the supplied contract sum inputs."""
    summary = await PayApplicationService(db).g702_summary(
        pay_application_id,
        project_budget=Money.of(payload.project_budget),
        approved_change_order_amounts=[
            Money.of(amount) for amount in payload.approved_change_order_amounts
        ],
    )
    return G702Response.model_validate(summary)
