"""
Wire models for the JSON columns stored with bills, purchases and proformas.

The storefront writes these sub-objects with camelCase keys (``gstAmount``,
``amountPaid``, ``paymentTracking``...) and older rows may omit fields
entirely. All of that tolerance lives here: missing fields get their
defaults once, at this boundary, and the domain only ever sees complete,
typed objects.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer
from pydantic import ValidationError as PydanticValidationError

from domain.errors import GatewayError, ValidationError
from domain.invoice import BillTotals, compute_totals
from domain.line_item import LineItem
from domain.payment import PaymentEntry, PaymentLedger, PaymentStatus
from domain.tax import Jurisdiction, TaxBreakdown, TaxBreakdownType
from domain.values import PAYMENT_EPSILON, ZERO, decimal_to_wire
from repositories.gateway import parse_utc_datetime

LEGACY_BALANCE_NOTE = "Balance carried forward"


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LineItemPayload(WireModel):
    """One element of the ``items`` JSON array."""

    product_ref: int = Field(validation_alias=AliasChoices("id", "product_ref"), serialization_alias="id")
    name: str = ""
    size: Optional[str] = None
    unit: Optional[str] = None
    quantity: Decimal
    unit_price: Decimal = Field(
        validation_alias=AliasChoices("price", "rate", "unit_price"), serialization_alias="price"
    )
    tax_rate: Decimal = Field(
        default=ZERO, validation_alias=AliasChoices("gst", "tax_rate"), serialization_alias="gst"
    )
    amount: Optional[Decimal] = None
    gst_amount: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("gstAmount", "gst_amount"), serialization_alias="gstAmount"
    )
    total: Optional[Decimal] = None
    length: Optional[Decimal] = None
    width: Optional[Decimal] = None
    piece_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("pieceCount", "piece_count"), serialization_alias="pieceCount"
    )

    @field_serializer(
        "quantity", "unit_price", "tax_rate", "amount", "gst_amount", "total", "length", "width"
    )
    def _decimal_to_wire(self, value: Optional[Decimal]) -> Optional[str]:
        return decimal_to_wire(value)

    @staticmethod
    def from_domain(line: LineItem) -> "LineItemPayload":
        return LineItemPayload(
            product_ref=line.product_ref,
            name=line.name,
            size=line.size,
            unit=line.unit,
            quantity=line.quantity,
            unit_price=line.unit_price,
            tax_rate=line.tax_rate,
            amount=line.amount,
            gst_amount=line.tax_amount,
            total=line.line_total,
            length=line.length,
            width=line.width,
            piece_count=line.piece_count,
        )

    def to_domain(self) -> LineItem:
        # amount / gstAmount / total are derived and recomputed, never trusted.
        return LineItem(
            product_ref=self.product_ref,
            quantity=self.quantity,
            unit_price=self.unit_price,
            tax_rate=self.tax_rate,
            name=self.name,
            size=self.size,
            unit=self.unit,
            length=self.length,
            width=self.width,
            piece_count=self.piece_count,
        )


class TaxBreakdownPayload(WireModel):
    type: TaxBreakdownType = TaxBreakdownType.SINGLE
    sgst: Optional[Decimal] = None
    cgst: Optional[Decimal] = None
    igst: Optional[Decimal] = None

    @field_serializer("sgst", "cgst", "igst")
    def _decimal_to_wire(self, value: Optional[Decimal]) -> Optional[str]:
        return decimal_to_wire(value)

    @staticmethod
    def from_domain(breakdown: TaxBreakdown) -> "TaxBreakdownPayload":
        if breakdown.is_split:
            return TaxBreakdownPayload(type=breakdown.type, sgst=breakdown.sgst, cgst=breakdown.cgst)
        return TaxBreakdownPayload(type=breakdown.type, igst=breakdown.igst)

    @property
    def jurisdiction(self) -> Jurisdiction:
        return Jurisdiction.SAME if self.type is TaxBreakdownType.SPLIT else Jurisdiction.OTHER


class PaymentEntryPayload(WireModel):
    amount: Decimal
    recorded_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("date", "recorded_at"), serialization_alias="date"
    )
    note: str = ""
    payment_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("paymentId", "payment_id"), serialization_alias="paymentId"
    )

    @field_serializer("amount")
    def _amount_to_wire(self, value: Decimal) -> Optional[str]:
        return decimal_to_wire(value)

    @field_serializer("recorded_at")
    def _recorded_at_to_wire(self, value: Optional[datetime]) -> Optional[str]:
        return value.astimezone(timezone.utc).isoformat() if value is not None else None


class PaymentTrackingPayload(WireModel):
    total_amount: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("totalAmount", "total_amount"), serialization_alias="totalAmount"
    )
    amount_paid: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("amountPaid", "amount_paid"), serialization_alias="amountPaid"
    )
    amount_pending: Optional[Decimal] = Field(
        default=None,
        validation_alias=AliasChoices("amountPending", "amount_pending"),
        serialization_alias="amountPending",
    )
    payments: List[PaymentEntryPayload] = Field(default_factory=list)

    @field_serializer("total_amount", "amount_paid", "amount_pending")
    def _decimal_to_wire(self, value: Optional[Decimal]) -> Optional[str]:
        return decimal_to_wire(value)

    @staticmethod
    def from_domain(ledger: PaymentLedger) -> "PaymentTrackingPayload":
        return PaymentTrackingPayload(
            total_amount=ledger.total_amount,
            amount_paid=ledger.amount_paid,
            amount_pending=ledger.amount_pending,
            payments=[
                PaymentEntryPayload(
                    amount=entry.amount,
                    recorded_at=entry.recorded_at,
                    note=entry.note,
                    payment_id=entry.payment_id,
                )
                for entry in ledger.history
            ],
        )


def _decode(raw: Any, *, record: str) -> Any:
    """JSON columns come back parsed from PostgREST, but older rows stored them as text."""

    if isinstance(raw, str):
        try:
            return json.loads(raw) if raw.strip() else None
        except json.JSONDecodeError as e:
            raise GatewayError(f"Malformed JSON on {record}: {e}") from e
    return raw


def _fallback_time(created_at: Optional[datetime]) -> datetime:
    return created_at if created_at is not None else datetime.now(timezone.utc)


def items_to_wire(items: List[LineItem]) -> List[dict[str, Any]]:
    return [
        LineItemPayload.from_domain(line).model_dump(mode="json", by_alias=True, exclude_none=True)
        for line in items
    ]


def items_from_wire(raw: Any, *, record: str) -> List[LineItem]:
    try:
        return [LineItemPayload.model_validate(item).to_domain() for item in (_decode(raw, record=record) or [])]
    except (PydanticValidationError, ValidationError) as e:
        raise GatewayError(f"Malformed line items on {record}: {e}") from e


def breakdown_to_wire(breakdown: TaxBreakdown) -> dict[str, Any]:
    return TaxBreakdownPayload.from_domain(breakdown).model_dump(mode="json", by_alias=True, exclude_none=True)


def jurisdiction_from_wire(raw: Any, *, record: str) -> Jurisdiction:
    """The stored breakdown type decides the jurisdiction; rows without one were inter-state."""

    try:
        return TaxBreakdownPayload.model_validate(_decode(raw, record=record) or {}).jurisdiction
    except PydanticValidationError as e:
        raise GatewayError(f"Malformed tax breakdown on {record}: {e}") from e


def ledger_to_wire(ledger: PaymentLedger) -> dict[str, Any]:
    return PaymentTrackingPayload.from_domain(ledger).model_dump(mode="json", by_alias=True, exclude_none=True)


def ledger_from_wire(
    raw: Any,
    *,
    status: Optional[str],
    total: Decimal,
    created_at: Optional[datetime],
    record: str,
) -> PaymentLedger:
    """
    Rebuild a PaymentLedger from its stored tracking object.

    Defaulting rules for incomplete rows:
    - No tracking object: a "paid" status means settled at creation time;
      anything else means nothing has been paid.
    - Amounts without a matching history: the unexplained paid amount becomes
      a single carried-forward entry so the history still sums to amount_paid.
    - A paid amount above the total by no more than PAYMENT_EPSILON is the
      float noise of older clients and is clamped to the total.
    """

    try:
        payload = PaymentTrackingPayload.model_validate(_decode(raw, record=record) or {})
    except PydanticValidationError as e:
        raise GatewayError(f"Malformed payment tracking on {record}: {e}") from e

    when = _fallback_time(created_at)

    if payload.amount_paid is None and not payload.payments:
        ledger = PaymentLedger.open(total)
        if (status or "").strip().lower() == PaymentStatus.PAID.value:
            ledger = ledger.mark_paid(when, note="Paid at time of billing")
        return ledger

    history = tuple(
        PaymentEntry(
            amount=entry.amount,
            recorded_at=parse_utc_datetime(entry.recorded_at) or when,
            note=entry.note,
            payment_id=entry.payment_id,
        )
        for entry in payload.payments
    )
    history_total = sum((entry.amount for entry in history), ZERO)
    amount_paid = payload.amount_paid if payload.amount_paid is not None else history_total

    if amount_paid > total:
        if amount_paid - total > PAYMENT_EPSILON:
            raise GatewayError(
                f"Inconsistent payment tracking on {record}: paid {amount_paid} exceeds total {total}"
            )
        # Float sums from the storefront overshoot the recomputed total by a few ulps.
        amount_paid = total

    if amount_paid - history_total > PAYMENT_EPSILON:
        history = history + (
            PaymentEntry(amount=amount_paid - history_total, recorded_at=when, note=LEGACY_BALANCE_NOTE),
        )

    try:
        return PaymentLedger(
            total_amount=total,
            amount_paid=amount_paid,
            amount_pending=total - amount_paid,
            history=history,
        )
    except (ValidationError, ValueError) as e:
        raise GatewayError(f"Inconsistent payment tracking on {record}: {e}") from e


def totals_to_columns(totals: BillTotals) -> dict[str, Any]:
    """The denormalised total columns shared by bills, purchases and proformas."""

    return {
        "subtotal": decimal_to_wire(totals.subtotal),
        "gst_breakdown": breakdown_to_wire(totals.tax_breakdown),
        "total_gst": decimal_to_wire(totals.total_tax),
        "total": decimal_to_wire(totals.grand_total),
    }


def totals_from_row(row: Any, items: List[LineItem], *, record: str) -> BillTotals:
    """
    Recompute totals from the stored items and breakdown type.

    The stored subtotal / total columns exist for querying; the items are the
    source of truth.
    """

    jurisdiction = jurisdiction_from_wire(row.get("gst_breakdown"), record=record)
    try:
        return compute_totals(items, jurisdiction)
    except ValidationError as e:
        raise GatewayError(f"Cannot compute totals for {record}: {e}") from e


__all__ = [
    "LineItemPayload",
    "PaymentEntryPayload",
    "PaymentTrackingPayload",
    "TaxBreakdownPayload",
    "breakdown_to_wire",
    "items_from_wire",
    "items_to_wire",
    "jurisdiction_from_wire",
    "ledger_from_wire",
    "ledger_to_wire",
    "totals_from_row",
    "totals_to_columns",
]
