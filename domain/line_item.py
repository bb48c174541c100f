"""
Domain: Line items sold or purchased.

Rules implemented here:
- amount = quantity * unit_price
- tax_amount = amount * tax_rate / 100
- line_total = amount + tax_amount
- quantity >= 0, unit_price >= 0, 0 <= tax_rate <= 100
- Dimensions (length, width, piece_count) are descriptive only; they never
  feed the amount.

Derived values are unrounded. Rounding happens only at presentation time.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from .errors import ValidationError
from .values import ZERO, to_decimal, to_optional_decimal

_HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    A single product line on a bill, purchase or proforma.

    product_ref is the inventory product id. name/size/unit are a snapshot of
    the product at the time the line was captured, so later catalog edits do
    not rewrite history.
    """

    product_ref: int
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    name: str = ""
    size: Optional[str] = None
    unit: Optional[str] = None
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    piece_count: Optional[int] = None

    def __post_init__(self) -> None:
        for attr in ("quantity", "unit_price", "tax_rate"):
            if not isinstance(getattr(self, attr), Decimal):
                raise ValidationError(f"{attr} must be a Decimal", field=attr)
        if self.quantity < ZERO:
            raise ValidationError("quantity must be >= 0", field="quantity")
        if self.unit_price < ZERO:
            raise ValidationError("unit_price must be >= 0", field="unit_price")
        if self.tax_rate < ZERO or self.tax_rate > _HUNDRED:
            raise ValidationError("tax_rate must be between 0 and 100", field="tax_rate")

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def tax_amount(self) -> Decimal:
        return self.amount * self.tax_rate / _HUNDRED

    @property
    def line_total(self) -> Decimal:
        return self.amount + self.tax_amount

    @staticmethod
    def from_values(
        *,
        product_ref: Any,
        quantity: Any,
        unit_price: Any,
        tax_rate: Any,
        name: str = "",
        size: Optional[str] = None,
        unit: Optional[str] = None,
        length: Any = None,
        width: Any = None,
        piece_count: Any = None,
    ) -> "LineItem":
        """Build a LineItem from loosely typed input, parsing every number once."""

        try:
            ref = int(product_ref)
        except (TypeError, ValueError):
            raise ValidationError(
                f"product_ref must be an integer id, got {product_ref!r}", field="product_ref"
            ) from None

        pieces: Optional[int] = None
        if piece_count is not None and piece_count != "":
            pieces_dec = to_decimal(piece_count, field="piece_count")
            if pieces_dec != pieces_dec.to_integral_value() or pieces_dec < ZERO:
                raise ValidationError("piece_count must be a whole number >= 0", field="piece_count")
            pieces = int(pieces_dec)

        return LineItem(
            product_ref=ref,
            quantity=to_decimal(quantity, field="quantity"),
            unit_price=to_decimal(unit_price, field="unit_price"),
            tax_rate=to_decimal(tax_rate, field="tax_rate"),
            name=name or "",
            size=size or None,
            unit=unit or None,
            length=to_optional_decimal(length, field="length"),
            width=to_optional_decimal(width, field="width"),
            piece_count=pieces,
        )


__all__ = ["LineItem"]
