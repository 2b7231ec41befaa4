"""Schedule of Values service."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.calculators.totals import TotalsCalculator
from billing_engine.calculators.types import SOVSummary
from billing_engine.errors import NumberingConflictError
from billing_engine.models import SOVLineItem
from billing_engine.money import parse_amount
from billing_engine.validation import parse_percent, require_text

logger = logging.getLogger(__name__)

DEFAULT_RETAINAGE_PCT = Decimal("10")


class ScheduleOfValuesService:
    """Append-only catalog of a project's billable line items.

    There is no delete or renumber operation: a mis-entered item is corrected
    by adding an offsetting item, and items referenced by a pay application
    keep their number for the life of the project.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add_line_item(
        self,
        project_id: UUID,
        description: str,
        scheduled_value: Any,
        retainage_pct: Any = DEFAULT_RETAINAGE_PCT,
    ) -> SOVLineItem:
        """Append an item with the next item number.

        Raises:
            ValidationError: blank description, value <= 0, pct outside [0, 100]
            NumberingConflictError: a concurrent writer took the same number
        """
        description = require_text(description, "description")
        value = parse_amount(scheduled_value, "scheduled_value", allow_zero=False)
        pct = parse_percent(retainage_pct, "retainage_pct")

        item = SOVLineItem(
            project_id=project_id,
            item_number=await self._next_item_number(project_id),
            description=description,
            scheduled_value=value,
            retainage_pct=pct,
        )
        self.session.add(item)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise NumberingConflictError(
                f"SOV item number {item.item_number} already taken for project {project_id}",
                project_id=str(project_id),
            ) from exc

        logger.info(
            "Added SOV item #%d to project %s (%s)",
            item.item_number,
            project_id,
            value,
        )
        return item

    async def list_items(self, project_id: UUID) -> list[SOVLineItem]:
        """All items of a project ordered by item number."""
        result = await self.session.execute(
            select(SOVLineItem)
            .where(SOVLineItem.project_id == project_id)
            .order_by(SOVLineItem.item_number)
        )
        return list(result.scalars().all())

    async def summarize(self, project_id: UUID) -> SOVSummary:
        """Total contract value and weighted retainage for a project."""
        return TotalsCalculator.schedule_summary(await self.list_items(project_id))

    async def _next_item_number(self, project_id: UUID) -> int:
        current = await self.session.scalar(
            select(func.max(SOVLineItem.item_number)).where(
                SOVLineItem.project_id == project_id
            )
        )
        return (current or 0) + 1
