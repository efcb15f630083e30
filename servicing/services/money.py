# This project was developed with assistance from AI tools.
"""Decimal money helpers.

Amounts are quantized to the configured number of places with the loan's
rounding method. Binary floats are converted through their string form so
``0.1`` stays ``Decimal("0.1")``.
"""

import decimal
from decimal import Decimal

from ..core.config import settings
from ..schemas.loan import RoundingMethod

ROUNDING_MODES: dict[RoundingMethod, str] = {
    RoundingMethod.BANKERS: decimal.ROUND_HALF_EVEN,
    RoundingMethod.HALF_UP: decimal.ROUND_HALF_UP,
    RoundingMethod.HALF_DOWN: decimal.ROUND_HALF_DOWN,
    RoundingMethod.UP: decimal.ROUND_UP,
    RoundingMethod.DOWN: decimal.ROUND_DOWN,
    RoundingMethod.HALF_AWAY: decimal.ROUND_HALF_UP,
    RoundingMethod.HALF_TOWARD: decimal.ROUND_HALF_DOWN,
}

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def money_context() -> decimal.Context:
    """Arithmetic context for intermediate money calculations."""
    return decimal.Context(prec=settings.DECIMAL_PRECISION, rounding=decimal.ROUND_HALF_EVEN)


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and floats to Decimal without binary noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except decimal.InvalidOperation:
        raise ValueError(f"Not a decimal amount: {value!r}") from None


def quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_money(
    value,
    method: RoundingMethod | str | None = None,
    places: int | None = None,
) -> Decimal:
    """Round an amount to ``places`` using ``method``.

    ``method`` may be a RoundingMethod member or its string value; both
    dispatch identically. Defaults come from settings.
    """
    rounding = RoundingMethod(method or settings.DEFAULT_ROUNDING_METHOD)
    if places is None:
        places = settings.MONEY_DECIMAL_PLACES
    return to_decimal(value).quantize(quantum(places), rounding=ROUNDING_MODES[rounding])


def format_currency(value, places: int = 2, symbol: str = "$") -> str:
    """Render an amount as ``$1,234.56`` (``-$12.00`` for negatives)."""
    amount = round_money(value, RoundingMethod.HALF_UP, places)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.{places}f}"
