"""
Amount parsing (SSOT).

Scrapers report amounts either as numbers or as display strings
("1,234.50", "-12.00 ₪"). This module turns both into a number and then into
signed YNAB milliunits.

Sign Convention (SSOT):
- Scraped amounts are positive for charges
- YNAB treats outflows as negative
- to_milliunits() negates and scales by 1000 in one place
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .transactions import TransactionDataError

MILLIUNITS_PER_UNIT = 1000

# Outflow convention: charges reported positive become negative in YNAB
OUTFLOW_SIGN = -1

DEFAULT_FOREIGN_CURRENCY_MARKERS = ("$", "€", "£", "USD", "EUR", "GBP")

_STRIP_PATTERN = re.compile(r"[^\d.\-]")
_VALID_AMOUNT = re.compile(r"^[+-]?(\d+(\.\d+)?|Infinity)$")


class InvalidAmount(TransactionDataError):
    """Raised when an amount cannot be parsed into a number."""

    def __init__(self, value: object, reason: str = "not a valid amount"):
        self.value = value
        super().__init__(f"Invalid amount {value!r}: {reason}")


class UnsupportedCurrency(TransactionDataError):
    """Raised when an amount string is tagged with a foreign currency."""

    def __init__(self, value: str, marker: str):
        self.value = value
        self.marker = marker
        super().__init__(f"Unsupported currency {marker!r} in amount {value!r}")


def parse_amount(
    value: object,
    foreign_currency_markers: tuple[str, ...] = DEFAULT_FOREIGN_CURRENCY_MARKERS,
) -> int | float | Decimal:
    """Parse a scraped amount.

    Args:
        value: Number or display string
        foreign_currency_markers: Substrings that mark a non-budget currency

    Returns:
        Numeric amount (numbers pass through unchanged)

    Raises:
        UnsupportedCurrency: If a string carries a foreign currency marker
        InvalidAmount: If the value is not a number or parseable string

    Examples:
        >>> parse_amount(12.5)
        12.5
        >>> parse_amount("1,234.50")
        1234.5
        >>> parse_amount("$12.50")  # Raises UnsupportedCurrency
    """
    # bool is an int subclass but never a real amount
    if isinstance(value, bool):
        raise InvalidAmount(value, "boolean is not an amount")

    if isinstance(value, (int, float, Decimal)):
        return value

    if not isinstance(value, str):
        raise InvalidAmount(value, f"unsupported type {type(value).__name__}")

    for marker in foreign_currency_markers:
        if marker and marker in value:
            raise UnsupportedCurrency(value, marker)

    cleaned = _STRIP_PATTERN.sub("", value)
    if not _VALID_AMOUNT.match(cleaned):
        raise InvalidAmount(value)

    return float(cleaned)


def to_milliunits(amount: int | float | Decimal) -> int:
    """Convert a parsed amount to signed YNAB milliunits.

    Applies the outflow sign convention and rounds half-up to a whole
    milliunit.

    Examples:
        >>> to_milliunits(12.5)
        -12500
        >>> to_milliunits(-3.2)
        3200
    """
    if isinstance(amount, float) and not math.isfinite(amount):
        raise InvalidAmount(amount, "amount must be finite")

    try:
        decimal_amount = Decimal(str(amount))
    except InvalidOperation as e:
        raise InvalidAmount(amount) from e

    if not decimal_amount.is_finite():
        raise InvalidAmount(amount, "amount must be finite")

    scaled = (decimal_amount * MILLIUNITS_PER_UNIT * OUTFLOW_SIGN).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return int(scaled)
