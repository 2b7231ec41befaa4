"""Pay application service - orchestrates billing periods over the database."""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from billing_engine.calculators.carry_forward import CarryForwardResolver
from billing_engine.calculators.reporting import filter_by_period, summarize_statuses
from billing_engine.calculators.totals import TotalsCalculator
from billing_engine.calculators.types import (
    G702Summary,
    LineInput,
    PayAppStatusSummary,
    PayAppTotals,
)
from billing_engine.errors import (
    InvalidStateError,
    NotFoundError,
    NumberingConflictError,
    PermissionDeniedError,
    ValidationError,
)
from billing_engine.models import (
    PayAppAuditEvent,
    PayAppLineItem,
    PayApplication,
    SOVLineItem,
)
from billing_engine.models.base import utcnow
from billing_engine.money import Money, parse_amount
from billing_engine.services.certification import CertificationWorkflow, TransitionResult
from billing_engine.services.lien_waiver_service import LienWaiverService
from billing_engine.services.state_machine import PayAppStateMachine, PayAppStatus
from billing_engine.validation import parse_percent, validate_period

logger = logging.getLogger(__name__)


class LineItemField(str, Enum):
    """Editable pay application line item fields."""

    THIS_PERIOD = "this_period"
    MATERIALS_STORED = "materials_stored"
    CERTIFIED_THIS_PERIOD = "certified_this_period"
    RETAINAGE_PCT_OVERRIDE = "retainage_pct_override"


class PayApplicationService:
    """Service for managing the pay application lifecycle.

    Operations:
    - create_pay_application: number the period and seed lines by carry-forward
    - update_line_item: edit one G703 field while not paid
    - update_details: edit contractor/contract header fields while not paid
    - transition: move through the certification workflow
    - compute_totals / g702_summary: derived figures, recomputed on every read
    - status_report: per-status counts for a period range
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ----- reads -----

    async def get_pay_application(self, pay_application_id: UUID) -> PayApplication | None:
        return await self.session.get(PayApplication, pay_application_id)

    async def require_pay_application(self, pay_application_id: UUID) -> PayApplication:
        pay_app = await self.get_pay_application(pay_application_id)
        if pay_app is None:
            raise NotFoundError(f"Pay application {pay_application_id} not found")
        return pay_app

    async def list_pay_applications(self, project_id: UUID) -> list[PayApplication]:
        """Applications of a project ordered by number."""
        result = await self.session.execute(
            select(PayApplication)
            .where(PayApplication.project_id == project_id)
            .order_by(PayApplication.pay_app_number)
        )
        return list(result.scalars().all())

    async def get_line_items(self, pay_application_id: UUID) -> list[PayAppLineItem]:
        """Line items in canonical SOV item-number order."""
        result = await self.session.execute(
            select(PayAppLineItem)
            .join(SOVLineItem, PayAppLineItem.sov_line_item_id == SOVLineItem.sov_line_item_id)
            .where(PayAppLineItem.pay_application_id == pay_application_id)
            .order_by(SOVLineItem.item_number)
            .options(selectinload(PayAppLineItem.sov_line_item))
        )
        return list(result.scalars().all())

    # ----- creation -----

    async def create_pay_application(
        self,
        project_id: UUID,
        period_from: date,
        period_to: date,
        contractor_name: str | None = None,
        contract_number: str | None = None,
        contractor_id: UUID | None = None,
    ) -> PayApplication:
        """Create the next pay application in draft and seed its line items.

        Raises:
            ValidationError: period_to before period_from
            PreconditionError: the project's SOV is empty
            NumberingConflictError: a concurrent writer took the same number
        """
        validate_period(period_from, period_to)

        sov_result = await self.session.execute(
            select(SOVLineItem)
            .where(SOVLineItem.project_id == project_id)
            .order_by(SOVLineItem.item_number)
        )
        sov_items = list(sov_result.scalars().all())

        prior = await self.find_carry_forward_source(project_id)
        prior_lines = await self.get_line_items(prior.pay_application_id) if prior else None

        pay_app = PayApplication(
            pay_application_id=uuid4(),
            project_id=project_id,
            pay_app_number=await self._next_pay_app_number(project_id),
            period_from=period_from,
            period_to=period_to,
            status=PayAppStatus.DRAFT.value,
            contractor_id=contractor_id,
            contractor_name=contractor_name,
            contract_number=contract_number,
        )
        # Seeding validates the SOV before anything is written
        lines = CarryForwardResolver.seed(pay_app.pay_application_id, sov_items, prior_lines)

        self.session.add(pay_app)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise NumberingConflictError(
                f"Pay application number {pay_app.pay_app_number} already taken "
                f"for project {project_id}",
                project_id=str(project_id),
            ) from exc

        self.session.add_all(lines)
        await self.session.flush()

        logger.info(
            "Created pay application #%d for project %s with %d line(s)%s",
            pay_app.pay_app_number,
            project_id,
            len(lines),
            f", carried forward from #{prior.pay_app_number}" if prior else "",
        )
        return pay_app

    async def find_carry_forward_source(self, project_id: UUID) -> PayApplication | None:
        """Most recent certified or paid application (by number), if any."""
        result = await self.session.execute(
            select(PayApplication)
            .where(
                PayApplication.project_id == project_id,
                PayApplication.status.in_(
                    [s.value for s in PayAppStateMachine.CARRY_FORWARD_SOURCES]
                ),
            )
            .order_by(PayApplication.pay_app_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _next_pay_app_number(self, project_id: UUID) -> int:
        current = await self.session.scalar(
            select(func.max(PayApplication.pay_app_number)).where(
                PayApplication.project_id == project_id
            )
        )
        return (current or 0) + 1

    # ----- editing -----

    async def update_line_item(
        self,
        pay_application_id: UUID,
        line_item_id: UUID,
        field: LineItemField | str,
        value: Any,
        can_certify: bool = False,
    ) -> PayAppLineItem:
        """Replace one editable field of a line item.

        ``certified_this_period`` and ``retainage_pct_override`` accept None to
        clear the value. Over-billing is allowed and only logged.

        Raises:
            InvalidStateError: the application is paid
            NotFoundError: unknown application or line
            PermissionDeniedError: certified amount written without the role
            ValidationError: negative amount, pct outside [0, 100], unknown field
        """
        pay_app = await self.require_pay_application(pay_application_id)
        self._ensure_not_frozen(pay_app)

        try:
            field = LineItemField(field)
        except ValueError:
            raise ValidationError(f"Field '{field}' is not editable", field=str(field)) from None

        line = await self._get_line_item(pay_application_id, line_item_id)

        if field == LineItemField.THIS_PERIOD:
            line.work_completed_this_period = parse_amount(value, field.value)
        elif field == LineItemField.MATERIALS_STORED:
            line.materials_stored = parse_amount(value, field.value)
        elif field == LineItemField.CERTIFIED_THIS_PERIOD:
            if not can_certify:
                raise PermissionDeniedError(
                    "Certifier permission is required to set the certified amount",
                    pay_application_id=str(pay_application_id),
                )
            line.certified_this_period = (
                None if value is None else parse_amount(value, field.value)
            )
        elif field == LineItemField.RETAINAGE_PCT_OVERRIDE:
            line.retainage_pct_override = (
                None if value is None else parse_percent(value, field.value)
            )

        line.updated_at = utcnow()
        await self.session.flush()

        row = TotalsCalculator.line_totals(LineInput.from_line_item(line))
        if row.is_over_billed:
            logger.warning(
                "Line #%s of pay application #%d is over-billed: %s of %s (%d%%)",
                row.item_number,
                pay_app.pay_app_number,
                row.total,
                row.scheduled_value,
                row.pct_complete,
            )
        return line

    async def update_details(
        self,
        pay_application_id: UUID,
        contractor_name: str | None = None,
        contract_number: str | None = None,
        notes: str | None = None,
    ) -> PayApplication:
        """Update header fields; None leaves a field unchanged."""
        pay_app = await self.require_pay_application(pay_application_id)
        self._ensure_not_frozen(pay_app)

        if contractor_name is not None:
            pay_app.contractor_name = contractor_name
        if contract_number is not None:
            pay_app.contract_number = contract_number
        if notes is not None:
            pay_app.notes = notes
        pay_app.updated_at = utcnow()

        await self.session.flush()
        return pay_app

    # ----- workflow -----

    async def transition(
        self,
        pay_application_id: UUID,
        to_status: str,
        *,
        can_certify: bool,
        today: date,
        actor_user_id: UUID | None = None,
        dispute_notes: str | None = None,
    ) -> TransitionResult:
        """Move an application through the certification workflow.

        Records an audit event for every successful transition.
        """
        pay_app = await self.require_pay_application(pay_application_id)

        waiver_count = await LienWaiverService(self.session).count(pay_application_id)

        result = CertificationWorkflow.apply(
            pay_app,
            to_status,
            can_certify=can_certify,
            today=today,
            actor_user_id=actor_user_id,
            dispute_notes=dispute_notes,
            lien_waiver_count=waiver_count,
        )
        pay_app.updated_at = utcnow()

        details: dict[str, Any] = {}
        if result.warnings:
            details["warnings"] = result.warnings
        if dispute_notes and result.to_status == PayAppStatus.DISPUTED.value:
            details["dispute_notes"] = dispute_notes
        self.session.add(
            PayAppAuditEvent(
                pay_application_id=pay_application_id,
                action=f"status_change:{result.from_status}:{result.to_status}",
                from_status=result.from_status,
                to_status=result.to_status,
                actor_user_id=actor_user_id,
                details_json=details,
            )
        )
        await self.session.flush()

        logger.info(
            "Pay application #%d (%s): %s -> %s",
            pay_app.pay_app_number,
            pay_application_id,
            result.from_status,
            result.to_status,
        )
        return result

    async def get_audit_events(self, pay_application_id: UUID) -> list[PayAppAuditEvent]:
        result = await self.session.execute(
            select(PayAppAuditEvent)
            .where(PayAppAuditEvent.pay_application_id == pay_application_id)
            .order_by(PayAppAuditEvent.created_at)
        )
        return list(result.scalars().all())

    # ----- derived figures -----

    async def compute_totals(self, pay_application_id: UUID) -> PayAppTotals:
        """G703 totals, recomputed from the current line items."""
        await self.require_pay_application(pay_application_id)
        lines = await self.get_line_items(pay_application_id)
        return TotalsCalculator.compute(LineInput.from_line_item(line) for line in lines)

    async def g702_summary(
        self,
        pay_application_id: UUID,
        project_budget: Money,
        approved_change_order_amounts: list[Money],
    ) -> G702Summary:
        totals = await self.compute_totals(pay_application_id)
        return TotalsCalculator.g702_summary(
            totals, project_budget, approved_change_order_amounts
        )

    async def status_report(
        self,
        project_id: UUID | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> tuple[list[PayApplication], PayAppStatusSummary]:
        """Applications inside a period range with per-status counts."""
        query = select(PayApplication).order_by(
            PayApplication.project_id, PayApplication.pay_app_number
        )
        if project_id is not None:
            query = query.where(PayApplication.project_id == project_id)
        result = await self.session.execute(query)

        apps = filter_by_period(result.scalars().all(), period_start, period_end)
        return apps, summarize_statuses(apps)

    # ----- helpers -----

    def _ensure_not_frozen(self, pay_app: PayApplication) -> None:
        if PayAppStateMachine.is_frozen(pay_app.status):
            raise InvalidStateError(
                f"{pay_app.label} is {pay_app.status} and can no longer be edited",
                pay_application_id=str(pay_app.pay_application_id),
                status=pay_app.status,
            )

    async def _get_line_item(
        self, pay_application_id: UUID, line_item_id: UUID
    ) -> PayAppLineItem:
        result = await self.session.execute(
            select(PayAppLineItem)
            .where(
                PayAppLineItem.pay_app_line_item_id == line_item_id,
                PayAppLineItem.pay_application_id == pay_application_id,
            )
            .options(selectinload(PayAppLineItem.sov_line_item))
        )
        line = result.scalar_one_or_none()
        if line is None:
            raise NotFoundError(
                f"Line item {line_item_id} not found on pay application {pay_application_id}"
            )
        return line
