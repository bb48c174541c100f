"""
Domain: Money, quantity and timestamp value helpers (pure).

Rules implemented here:
- Money and quantities are Decimal. Input is parsed once, at the boundary.
- Non-numeric, NaN and infinite input is rejected with ValidationError.
- Currency values are rounded to 2 places only for presentation; accumulation
  stays unrounded.
- Timestamps handed to the domain are timezone-aware UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .errors import ValidationError

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Residual pending amount treated as settled.
PAYMENT_EPSILON = Decimal("0.01")


def to_decimal(value: Any, *, field: str = "value") -> Decimal:
    """
    Parse a number into a finite Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion. Booleans are rejected even though they are ints.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be numeric, got {value!r}", field=field)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValidationError(f"{field} must be numeric, got an empty string", field=field)
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"{field} must be numeric, got {value!r}", field=field) from None
    else:
        raise ValidationError(f"{field} must be numeric, got {type(value).__name__}", field=field)

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number, got {value!r}", field=field)
    return result


def to_optional_decimal(value: Any, *, field: str = "value") -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_decimal(value, field=field)


def round_currency(value: Decimal) -> Decimal:
    """Quantize to 2 decimal places (presentation only)."""

    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Decimal, symbol: str = "₹") -> str:
    return f"{symbol}{round_currency(value):.2f}"


def decimal_to_wire(value: Optional[Decimal]) -> Optional[str]:
    """
    Serialize a Decimal without scientific notation or trailing zeros.

    Examples:
        decimal_to_wire(Decimal("1180.00"))  -> "1180"
        decimal_to_wire(Decimal("0.0000001")) -> "0.0000001"
    """

    if value is None:
        return None
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal = PAYMENT_EPSILON) -> bool:
    return abs(a - b) <= tolerance


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforce that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


__all__ = [
    "ZERO",
    "CENT",
    "PAYMENT_EPSILON",
    "to_decimal",
    "to_optional_decimal",
    "round_currency",
    "format_currency",
    "decimal_to_wire",
    "within_tolerance",
    "require_utc_timestamp",
]
