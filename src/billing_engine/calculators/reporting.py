"""Pay application status reporting."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import TYPE_CHECKING

from billing_engine.calculators.types import PayAppStatusSummary
from billing_engine.models import PAY_APP_STATUSES

if TYPE_CHECKING:
    from billing_engine.models import PayApplication


def filter_by_period(
    pay_apps: Iterable[PayApplication],
    period_start: date | None = None,
    period_end: date | None = None,
) -> list[PayApplication]:
    """Keep applications whose billing period lies inside the range."""
    selected = []
    for pay_app in pay_apps:
        if period_start is not None and pay_app.period_from < period_start:
            continue
        if period_end is not None and pay_app.period_to > period_end:
            continue
        selected.append(pay_app)
    return selected


def summarize_statuses(pay_apps: Sequence[PayApplication]) -> PayAppStatusSummary:
    """Count applications per status."""
    summary = PayAppStatusSummary(total=len(pay_apps))
    for pay_app in pay_apps:
        status = getattr(pay_app.status, "value", pay_app.status)
        if status in PAY_APP_STATUSES:
            setattr(summary, status, getattr(summary, status) + 1)
        else:
            summary.unknown.append(status)
    return summary
