"""
Domain: GST breakdown by jurisdiction.

Rules implemented here:
- The jurisdiction is supplied by the caller, never inferred.
- "same" (buyer and seller share a state): tax splits evenly into SGST and CGST,
  each equal to total_tax / 2.
- "other" (inter-state): a single IGST component equal to total_tax.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Union

from .errors import ValidationError
from .values import ZERO

_TWO = Decimal("2")


class Jurisdiction(str, Enum):
    SAME = "same"
    OTHER = "other"

    @staticmethod
    def parse(value: Union[str, "Jurisdiction", None]) -> "Jurisdiction":
        if isinstance(value, Jurisdiction):
            return value
        try:
            return Jurisdiction(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"jurisdiction must be 'same' or 'other', got {value!r}", field="jurisdiction"
            ) from None


class TaxBreakdownType(str, Enum):
    SPLIT = "SGST+CGST"
    SINGLE = "IGST"


@dataclass(frozen=True, slots=True)
class TaxBreakdown:
    """How total_tax is presented: SGST+CGST halves, or a single IGST amount."""

    type: TaxBreakdownType
    total_tax: Decimal

    @staticmethod
    def for_jurisdiction(jurisdiction: Jurisdiction, total_tax: Decimal) -> "TaxBreakdown":
        if jurisdiction is Jurisdiction.SAME:
            return TaxBreakdown(type=TaxBreakdownType.SPLIT, total_tax=total_tax)
        return TaxBreakdown(type=TaxBreakdownType.SINGLE, total_tax=total_tax)

    @property
    def is_split(self) -> bool:
        return self.type is TaxBreakdownType.SPLIT

    @property
    def sgst(self) -> Decimal:
        return self.total_tax / _TWO if self.is_split else ZERO

    @property
    def cgst(self) -> Decimal:
        return self.total_tax / _TWO if self.is_split else ZERO

    @property
    def igst(self) -> Decimal:
        return ZERO if self.is_split else self.total_tax

    @property
    def jurisdiction(self) -> Jurisdiction:
        return Jurisdiction.SAME if self.is_split else Jurisdiction.OTHER


__all__ = ["Jurisdiction", "TaxBreakdown", "TaxBreakdownType"]
