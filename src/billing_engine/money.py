"""Fixed-point money value type.

All billing arithmetic runs on ``Decimal`` at full precision. Rounding to
cents only happens when a value is formatted for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Union

from sqlalchemy import Numeric
from sqlalchemy.types import TypeDecorator

from billing_engine.errors import ValidationError

CENTS = Decimal("0.01")
STORAGE_SCALE = 4  # Numeric(18, 4) at persistence
STORAGE_QUANTUM = Decimal(1).scaleb(-STORAGE_SCALE)

Number = Union[int, str, float, Decimal]


def to_decimal(value: Any) -> Decimal:
    """Convert a numeric value to Decimal without rounding.

    Floats go through ``str`` to avoid binary representation artifacts.
    """
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, bool):
        raise ValidationError(f"Cannot convert {value!r} to a monetary amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"Not a valid amount: {value!r}") from None
    else:
        raise ValidationError(f"Cannot convert {type(value).__name__} to a monetary amount")

    if not result.is_finite():
        raise ValidationError(f"Amount must be finite, got {value!r}")
    return result


@dataclass(frozen=True, eq=False)
class Money:
    """Immutable USD amount backed by ``Decimal``."""

    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))

    @classmethod
    def zero(cls) -> Money:
        return cls(Decimal("0"))

    @classmethod
    def of(cls, value: Money | Number) -> Money:
        if isinstance(value, Money):
            return value
        return cls(to_decimal(value))

    # ----- arithmetic -----

    def __add__(self, other: Any) -> Money:
        if isinstance(other, Money):
            return Money(self.amount + other.amount)
        if isinstance(other, int) and other == 0:
            return self
        return NotImplemented

    def __radd__(self, other: Any) -> Money:
        # Lets the builtin sum() start from 0
        return self.__add__(other)

    def __sub__(self, other: Any) -> Money:
        if isinstance(other, Money):
            return Money(self.amount - other.amount)
        return NotImplemented

    def __neg__(self) -> Money:
        return Money(-self.amount)

    def __mul__(self, factor: Any) -> Money:
        if isinstance(factor, (Decimal, int)) and not isinstance(factor, bool):
            return Money(self.amount * factor)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> Any:
        """Divide by a scalar (-> Money) or by Money (-> Decimal ratio)."""
        if isinstance(other, Money):
            return self.amount / other.amount
        if isinstance(other, (Decimal, int)) and not isinstance(other, bool):
            return Money(self.amount / other)
        return NotImplemented

    # ----- comparison -----

    def _coerce(self, other: Any) -> Decimal | None:
        if isinstance(other, Money):
            return other.amount
        if isinstance(other, (Decimal, int)) and not isinstance(other, bool):
            return Decimal(other)
        return None

    def __eq__(self, other: object) -> bool:
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return self.amount == value

    def __hash__(self) -> int:
        return hash(self.amount)

    def __lt__(self, other: Any) -> bool:
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return self.amount < value

    def __le__(self, other: Any) -> bool:
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return self.amount <= value

    def __gt__(self, other: Any) -> bool:
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return self.amount > value

    def __ge__(self, other: Any) -> bool:
        value = self._coerce(other)
        if value is None:
            return NotImplemented
        return self.amount >= value

    # ----- display -----

    def is_negative(self) -> bool:
        return self.amount < 0

    def rounded(self) -> Decimal:
        """Amount rounded to cents (display boundary only)."""
        return self.amount.quantize(CENTS, rounding=ROUND_HALF_UP)

    def format(self) -> str:
        """Render as ``$1,234.56`` / ``-$1,234.56``."""
        cents = self.rounded()
        sign = "-" if cents < 0 else ""
        return f"{sign}${abs(cents):,.2f}"

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Money('{self.amount}')"


def parse_amount(
    value: Any,
    field_name: str,
    *,
    allow_zero: bool = True,
) -> Money:
    """Parse a user-entered amount, rejecting negatives and excess precision."""
    if value is None:
        raise ValidationError(f"'{field_name}' is required", field=field_name)
    money = Money.of(value)

    try:
        exact = money.amount == money.amount.quantize(STORAGE_QUANTUM)
    except InvalidOperation:
        raise ValidationError(
            f"'{field_name}' is out of range: {money.amount}", field=field_name
        ) from None
    if not exact:
        raise ValidationError(
            f"'{field_name}' has more than {STORAGE_SCALE} decimal places: {money.amount}",
            field=field_name,
        )
    if money.is_negative():
        raise ValidationError(
            f"'{field_name}' cannot be negative: {money.amount}", field=field_name
        )
    if not allow_zero and money == 0:
        raise ValidationError(f"'{field_name}' must be greater than zero", field=field_name)
    return money


class MoneyType(TypeDecorator):
    """Persist ``Money`` as ``Numeric(18, 4)``."""

    impl = Numeric(18, STORAGE_SCALE)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> Decimal | None:
        if value is None:
            return None
        return to_decimal(value)

    def process_result_value(self, value: Any, dialect: Any) -> Money | None:
        if value is None:
            return None
        return Money(to_decimal(value))
