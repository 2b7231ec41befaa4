"""Read-model types for the billing calculators."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from billing_engine.money import Money


def round_percent(value: Decimal) -> int:
    """Round a percentage to a whole number, half up."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class LineInput:
    """Everything the totals calculation needs about one G703 row."""

    scheduled_value: Money
    retainage_pct: Decimal  # SOV default, 0-100
    work_completed_previous: Money
    work_completed_this_period: Money
    materials_stored: Money
    certified_this_period: Money | None = None
    retainage_pct_override: Decimal | None = None

    # Identification for rendering
    line_item_id: UUID | None = None
    sov_line_item_id: UUID | None = None
    item_number: int | None = None
    description: str = ""

    @classmethod
    def from_line_item(cls, line: Any) -> LineInput:
        """Build from a PayAppLineItem with its ``sov_line_item`` loaded."""
        sov = line.sov_line_item
        return cls(
            scheduled_value=sov.scheduled_value,
            retainage_pct=sov.retainage_pct,
            work_completed_previous=line.work_completed_previous,
            work_completed_this_period=line.work_completed_this_period,
            materials_stored=line.materials_stored,
            certified_this_period=line.certified_this_period,
            retainage_pct_override=line.retainage_pct_override,
            line_item_id=line.pay_app_line_item_id,
            sov_line_item_id=sov.sov_line_item_id,
            item_number=sov.item_number,
            description=sov.description,
        )


@dataclass(frozen=True)
class LineTotals:
    """Computed G703 row."""

    line_item_id: UUID | None
    sov_line_item_id: UUID | None
    item_number: int | None
    description: str
    scheduled_value: Money
    work_completed_previous: Money
    work_completed_this_period: Money
    materials_stored: Money
    total: Money
    pct_complete: int  # Rounded for display
    retainage_pct: Decimal  # Effective rate (override or SOV default)
    retainage: Money
    certified_this_period: Money  # certified ?? this period

    @property
    def is_over_billed(self) -> bool:
        """Total completed and stored exceeds the scheduled value."""
        return self.total > self.scheduled_value


@dataclass(frozen=True)
class PayAppTotals:
    """G703 column totals plus the amount currently due."""

    scheduled_value: Money
    completed_previous: Money
    completed_this_period: Money
    materials_stored: Money
    total_earned: Money
    retainage_held: Money
    certified_this_period: Money
    pct_complete: Decimal  # Unrounded
    net_payment: Money
    lines: tuple[LineTotals, ...] = ()

    @property
    def pct_complete_display(self) -> int:
        return round_percent(self.pct_complete)

    @property
    def over_billed_lines(self) -> tuple[LineTotals, ...]:
        return tuple(line for line in self.lines if line.is_over_billed)


@dataclass(frozen=True)
class G702Summary:
    """AIA G702 application and certificate for payment figures.

    Contract sum figures come from the project budget and approved change
    orders and are informational only.
    """

    original_contract_sum: Money
    net_change_by_change_orders: Money
    contract_sum_to_date: Money
    total_completed_and_stored: Money
    retainage: Money
    total_earned_less_retainage: Money
    less_previous_certificates: Money
    current_payment_due: Money
    balance_to_finish_including_retainage: Money


@dataclass(frozen=True)
class SOVSummary:
    """Schedule of Values header figures."""

    item_count: int
    total_scheduled_value: Money
    weighted_retainage_pct: Decimal


@dataclass
class PayAppStatusSummary:
    """Count of pay applications per status."""

    total: int = 0
    draft: int = 0
    submitted: int = 0
    under_review: int = 0
    certified: int = 0
    paid: int = 0
    disputed: int = 0
    unknown: list[str] = field(default_factory=list)

    @property
    def certified_to_date(self) -> int:
        """Applications that reached certification (certified or paid)."""
        return self.certified + self.paid
