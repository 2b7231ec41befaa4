"""G703/G702 totals calculation.

Pure functions over an explicit collection of line inputs. Totals are never
cached or persisted; every read recomputes them from the line items.

Per line:
    total        = previous + this period + materials stored
    pct_complete = round(total / scheduled value * 100)   (0 if no value)
    retainage    = total * (override ?? SOV retainage pct) / 100

Aggregate:
    net_payment  = total earned - retainage held - completed previous

Money sums are exact; percentages are rounded only for display.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING

from billing_engine.calculators.types import (
    G702Summary,
    LineInput,
    LineTotals,
    PayAppTotals,
    SOVSummary,
    round_percent,
)
from billing_engine.money import Money

if TYPE_CHECKING:
    from billing_engine.models import SOVLineItem

HUNDRED = Decimal("100")


class TotalsCalculator:
    """Stateless G703/G702 calculator."""

    @staticmethod
    def line_totals(line: LineInput) -> LineTotals:
        """Compute one G703 row."""
        total = line.work_completed_previous + line.work_completed_this_period + line.materials_stored

        if line.scheduled_value > 0:
            pct_complete = round_percent(total / line.scheduled_value * HUNDRED)
        else:
            pct_complete = 0

        ret_pct = (
            line.retainage_pct_override
            if line.retainage_pct_override is not None
            else line.retainage_pct
        )
        retainage = total * ret_pct / HUNDRED

        certified = (
            line.certified_this_period
            if line.certified_this_period is not None
            else line.work_completed_this_period
        )

        return LineTotals(
            line_item_id=line.line_item_id,
            sov_line_item_id=line.sov_line_item_id,
            item_number=line.item_number,
            description=line.description,
            scheduled_value=line.scheduled_value,
            work_completed_previous=line.work_completed_previous,
            work_completed_this_period=line.work_completed_this_period,
            materials_stored=line.materials_stored,
            total=total,
            pct_complete=pct_complete,
            retainage_pct=ret_pct,
            retainage=retainage,
            certified_this_period=certified,
        )

    @staticmethod
    def compute(lines: Iterable[LineInput]) -> PayAppTotals:
        """Compute G703 column totals and the current payment due."""
        rows = tuple(TotalsCalculator.line_totals(line) for line in lines)

        scheduled_value = sum((r.scheduled_value for r in rows), Money.zero())
        completed_previous = sum((r.work_completed_previous for r in rows), Money.zero())
        completed_this_period = sum((r.work_completed_this_period for r in rows), Money.zero())
        materials_stored = sum((r.materials_stored for r in rows), Money.zero())
        total_earned = sum((r.total for r in rows), Money.zero())
        retainage_held = sum((r.retainage for r in rows), Money.zero())
        certified_this_period = sum((r.certified_this_period for r in rows), Money.zero())

        if scheduled_value > 0:
            pct_complete = total_earned / scheduled_value * HUNDRED
        else:
            pct_complete = Decimal("0")

        return PayAppTotals(
            scheduled_value=scheduled_value,
            completed_previous=completed_previous,
            completed_this_period=completed_this_period,
            materials_stored=materials_stored,
            total_earned=total_earned,
            retainage_held=retainage_held,
            certified_this_period=certified_this_period,
            pct_complete=pct_complete,
            net_payment=total_earned - retainage_held - completed_previous,
            lines=rows,
        )

    @staticmethod
    def contract_sum_to_date(
        project_budget: Money,
        approved_change_order_amounts: Iterable[Money],
    ) -> Money:
        """Original contract sum plus approved change orders."""
        return project_budget + sum(approved_change_order_amounts, Money.zero())

    @staticmethod
    def g702_summary(
        totals: PayAppTotals,
        project_budget: Money,
        approved_change_order_amounts: Iterable[Money],
    ) -> G702Summary:
        """Build the G702 certificate figures from computed totals."""
        change_orders = sum(approved_change_order_amounts, Money.zero())
        contract_sum = project_budget + change_orders
        earned_less_retainage = totals.total_earned - totals.retainage_held

        return G702Summary(
            original_contract_sum=project_budget,
            net_change_by_change_orders=change_orders,
            contract_sum_to_date=contract_sum,
            total_completed_and_stored=totals.total_earned,
            retainage=totals.retainage_held,
            total_earned_less_retainage=earned_less_retainage,
            less_previous_certificates=totals.completed_previous,
            current_payment_due=totals.net_payment,
            balance_to_finish_including_retainage=contract_sum - earned_less_retainage,
        )

    @staticmethod
    def schedule_summary(items: Iterable[SOVLineItem]) -> SOVSummary:
        """Total contract value and value-weighted retainage of an SOV."""
        items = list(items)
        total = sum((item.scheduled_value for item in items), Money.zero())
        if total > 0:
            weighted = sum(
                (item.scheduled_value.amount * item.retainage_pct for item in items),
                Decimal("0"),
            ) / total.amount
        else:
            weighted = Decimal("0")
        return SOVSummary(
            item_count=len(items),
            total_scheduled_value=total,
            weighted_retainage_pct=weighted,
        )
