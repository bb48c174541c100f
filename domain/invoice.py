"""
Domain: Invoice builder and billing documents.

Builder contract (compute_totals):
- Rejects an empty line-item sequence.
- Rejects any line with quantity <= 0.
- subtotal    = sum(line.amount)
- total_tax   = sum(line.tax_amount)
- grand_total = subtotal + total_tax
- The tax breakdown follows the caller-supplied jurisdiction.
- Accumulation is unrounded so many lines do not compound rounding error.

Documents:
- Bill (sales invoice) and Purchase carry a PaymentLedger; their status is the
  ledger's status.
- Proforma shares the invoice shape but never touches stock or payments.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .errors import ValidationError
from .line_item import LineItem
from .payment import PaymentLedger, PaymentStatus
from .tax import Jurisdiction, TaxBreakdown
from .values import ZERO, require_utc_timestamp


@dataclass(frozen=True, slots=True)
class BillTotals:
    subtotal: Decimal
    total_tax: Decimal
    grand_total: Decimal
    tax_breakdown: TaxBreakdown


def compute_totals(items: Iterable[LineItem], jurisdiction: Jurisdiction) -> BillTotals:
    """
    Compute subtotal, tax and grand total for a populated line-item set.

    Raises:
        ValidationError: no items, or a line with quantity <= 0.

    Example:
        item = LineItem(product_ref=1, quantity=Decimal("10"),
                        unit_price=Decimal("100"), tax_rate=Decimal("18"))
        totals = compute_totals([item], Jurisdiction.SAME)
        # subtotal 1000, total_tax 180, grand_total 1180, SGST 90 + CGST 90
    """

    lines = tuple(items)
    if not lines:
        raise ValidationError("At least one line item is required", field="items")

    jurisdiction = Jurisdiction.parse(jurisdiction)

    subtotal = ZERO
    total_tax = ZERO
    for index, line in enumerate(lines):
        if line.quantity <= ZERO:
            raise ValidationError(
                f"Line {index + 1}: quantity must be greater than 0", field="quantity"
            )
        subtotal += line.amount
        total_tax += line.tax_amount

    return BillTotals(
        subtotal=subtotal,
        total_tax=total_tax,
        grand_total=subtotal + total_tax,
        tax_breakdown=TaxBreakdown.for_jurisdiction(jurisdiction, total_tax),
    )


@dataclass(frozen=True, slots=True)
class PartySnapshot:
    """Counterparty details copied onto a document at the time it is issued."""

    name: str
    phone: Optional[str] = None
    gst: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("counterparty name is required", field="name")


def _check_timestamps(created_at: Optional[datetime]) -> None:
    if created_at is not None:
        require_utc_timestamp("created_at", created_at)


@dataclass(frozen=True, slots=True)
class Bill:
    """A sales invoice. ``bill_id`` is None until the gateway assigns one."""

    bill_id: Optional[int]
    customer: PartySnapshot
    items: Tuple[LineItem, ...]
    totals: BillTotals
    ledger: PaymentLedger
    invoice_no: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _check_timestamps(self.created_at)

    @property
    def status(self) -> PaymentStatus:
        return self.ledger.status

    def with_ledger(self, ledger: PaymentLedger) -> "Bill":
        return replace(self, ledger=ledger)


@dataclass(frozen=True, slots=True)
class Purchase:
    """A supplier invoice recorded on receipt of goods."""

    purchase_id: Optional[int]
    supplier: PartySnapshot
    invoice_no: str
    purchase_date: date
    items: Tuple[LineItem, ...]
    totals: BillTotals
    ledger: PaymentLedger
    bill_image: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _check_timestamps(self.created_at)

    @property
    def status(self) -> PaymentStatus:
        return self.ledger.status

    def with_ledger(self, ledger: PaymentLedger) -> "Purchase":
        return replace(self, ledger=ledger)


@dataclass(frozen=True, slots=True)
class Proforma:
    """A non-binding quotation: invoice shape, no stock or payment effect."""

    proforma_id: Optional[int]
    customer: PartySnapshot
    items: Tuple[LineItem, ...]
    totals: BillTotals
    proforma_no: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        _check_timestamps(self.created_at)


__all__ = [
    "Bill",
    "BillTotals",
    "PartySnapshot",
    "Proforma",
    "Purchase",
    "compute_totals",
]
