"""Seed a new pay application's line items from the prior certified period."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from billing_engine.errors import PreconditionError
from billing_engine.models import PayAppLineItem, SOVLineItem
from billing_engine.money import Money

logger = logging.getLogger(__name__)


class CarryForwardResolver:
    """Builds the G703 rows of a new pay application.

    For each SOV item, ``work_completed_previous`` is the prior certified
    line's cumulative total:

        previous + (certified this period ?? work this period) + materials stored

    SOV items with no matching prior line (added after the prior application)
    start from zero. The value is frozen on the new line; later corrections to
    the prior period never recompute it.
    """

    @staticmethod
    def carried_amount(prior_line: PayAppLineItem) -> Money:
        """Cumulative amount a prior line contributes to the next period."""
        billed = (
            prior_line.certified_this_period
            if prior_line.certified_this_period is not None
            else prior_line.work_completed_this_period
        )
        return prior_line.work_completed_previous + billed + prior_line.materials_stored

    @staticmethod
    def seed(
        pay_application_id: UUID,
        sov_items: Iterable[SOVLineItem],
        prior_lines: Iterable[PayAppLineItem] | None = None,
    ) -> list[PayAppLineItem]:
        """Create one transient line per SOV item, ordered by item number.

        Raises PreconditionError if the SOV has no items.
        """
        items = sorted(sov_items, key=lambda item: item.item_number)
        if not items:
            raise PreconditionError("Schedule of Values has no line items; nothing to bill")

        carried: dict[UUID, Money] = {}
        for prior in prior_lines or ():
            carried[prior.sov_line_item_id] = CarryForwardResolver.carried_amount(prior)

        lines = []
        for item in items:
            lines.append(
                PayAppLineItem(
                    pay_application_id=pay_application_id,
                    sov_line_item_id=item.sov_line_item_id,
                    sov_line_item=item,
                    work_completed_previous=carried.get(item.sov_line_item_id, Money.zero()),
                    work_completed_this_period=Money.zero(),
                    materials_stored=Money.zero(),
                    certified_this_period=None,
                    retainage_pct_override=None,
                )
            )

        logger.debug(
            "Seeded %d line(s) for pay application %s (%d carried forward)",
            len(lines),
            pay_application_id,
            len(carried),
        )
        return lines
