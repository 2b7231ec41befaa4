"""Lien waiver tracking.

Waivers are collateral documents: recording one never changes billing
totals, and amounts are not cross-checked against the application (a waiver
amount often differs from the billed amount on purpose).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.errors import NotFoundError, NumberingConflictError, ValidationError
from billing_engine.models import WAIVER_TYPES, LienWaiver, PayApplication
from billing_engine.money import parse_amount

logger = logging.getLogger(__name__)


class LienWaiverService:
    """Append-only lien waiver records per pay application."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        pay_application_id: UUID,
        waiver_type: str,
        amount: Any = None,
        through_date: date | None = None,
        received_date: date | None = None,
        notes: str | None = None,
        file_url: str | None = None,
    ) -> LienWaiver:
        """Record a waiver at any pay application status.

        Raises:
            ValidationError: unknown waiver type, negative or over-precise amount
            NotFoundError: unknown pay application
            NumberingConflictError: a concurrent writer took the same sequence
        """
        if waiver_type not in WAIVER_TYPES:
            raise ValidationError(
                f"Unknown waiver type '{waiver_type}'",
                field="waiver_type",
                allowed=list(WAIVER_TYPES),
            )
        if await self.session.get(PayApplication, pay_application_id) is None:
            raise NotFoundError(f"Pay application {pay_application_id} not found")

        waiver = LienWaiver(
            pay_application_id=pay_application_id,
            waiver_type=waiver_type,
            sequence=await self.count(pay_application_id) + 1,
            amount=parse_amount(amount, "amount") if amount is not None else None,
            through_date=through_date,
            received_date=received_date,
            notes=notes,
            file_url=file_url,
        )
        self.session.add(waiver)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise NumberingConflictError(
                f"Lien waiver sequence {waiver.sequence} already taken "
                f"for pay application {pay_application_id}",
                pay_application_id=str(pay_application_id),
            ) from exc

        logger.info(
            "Recorded %s lien waiver for pay application %s",
            waiver_type,
            pay_application_id,
        )
        return waiver

    async def list(self, pay_application_id: UUID) -> list[LienWaiver]:
        """Waivers in the order they were recorded."""
        result = await self.session.execute(
            select(LienWaiver)
            .where(LienWaiver.pay_application_id == pay_application_id)
            .order_by(LienWaiver.sequence)
        )
        return list(result.scalars().all())

    async def count(self, pay_application_id: UUID) -> int:
        return await self.session.scalar(
            select(func.count())
            .select_from(LienWaiver)
            .where(LienWaiver.pay_application_id == pay_application_id)
        ) or 0
