"""Input validation helpers shared by the services."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from billing_engine.errors import ValidationError
from billing_engine.money import to_decimal

PERCENT_MIN = Decimal("0")
PERCENT_MAX = Decimal("100")


def parse_percent(value: Any, field_name: str) -> Decimal:
    """Parse a percentage in [0, 100]."""
    if value is None:
        raise ValidationError(f"'{field_name}' is required", field=field_name)
    pct = to_decimal(value)
    if pct < PERCENT_MIN or pct > PERCENT_MAX:
        raise ValidationError(
            f"'{field_name}' must be between 0 and 100, got {pct}", field=field_name
        )
    return pct


def require_text(value: str | None, field_name: str) -> str:
    """Require a non-blank string."""
    if value is None or not value.strip():
        raise ValidationError(f"'{field_name}' must not be empty", field=field_name)
    return value


def validate_period(period_from: date, period_to: date) -> None:
    if period_to < period_from:
        raise ValidationError(
            f"period_to ({period_to}) is before period_from ({period_from})",
            field="period_to",
        )
