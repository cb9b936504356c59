"""
Numeric Coercion Module

Converts raw form input to Decimal and applies the two-decimal rounding
used throughout the allocation hierarchy.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# Largest exponent whose value still quantizes to cents at default precision
MAX_ADJUSTED = 25


def to_decimal(value: Any) -> Decimal:
    """Coerce raw input to a Decimal.

    Missing, blank, non-numeric, NaN, infinite and out-of-range values all
    become zero.
    The form must stay renderable, so no parse error ever reaches the caller.

    Args:
        value: Raw input (str, int, float, Decimal or None)

    Returns:
        Decimal value, or Decimal("0") if the input is not a finite number
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip().replace(",", ""))
        except (InvalidOperation, ValueError):
            logger.debug(f"Coerced non-numeric input {value!r} to 0")
            return ZERO

    if not result.is_finite():
        return ZERO

    if result and result.adjusted() > MAX_ADJUSTED:
        logger.debug(f"Coerced out-of-range input {value!r} to 0")
        return ZERO

    return result


def round2(value: Any) -> Decimal:
    """Round to two decimal places, half away from zero.

    A derived value too large to hold in cents rounds to zero.
    """
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.debug(f"Rounded out-of-range value {value!r} to 0")
        return round2(ZERO)


def amount_from_percent(parent: Decimal, percent: Decimal) -> Decimal:
    """Calculate round2(parent x percent / 100)."""
    return round2(to_decimal(parent) * to_decimal(percent) / HUNDRED)


def percent_from_amount(amount: Decimal, parent: Decimal) -> Decimal:
    """Calculate round2(amount / parent x 100).

    A zero or negative parent has no defined ratio; the percent falls back
    to zero instead of dividing.

    Args:
        amount: Child amount
        parent: Parent amount the percent is relative to

    Returns:
        Rounded percent, or Decimal("0.00") when the parent is not positive
    """
    parent = to_decimal(parent)
    if parent <= 0:
        return round2(ZERO)
    return round2(to_decimal(amount) / parent * HUNDRED)


def to_count(value: Any) -> int:
    """Coerce raw input to a non-negative integer count."""
    number = to_decimal(value)
    if number <= 0:
        return 0
    return int(number)
