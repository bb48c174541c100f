"""
Payment service for bills and purchases.

Each operation reloads the document, applies one ledger transition, persists
the new ledger (with its derived status) and publishes ``bill:updated`` or
``purchase:updated``. A transition that leaves the ledger unchanged (settling
a settled bill, replaying a payment id) writes nothing and publishes nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4

from domain.errors import InvalidAmountError, ValidationError
from domain.invoice import Bill, Purchase
from domain.payment import FULL_SETTLEMENT_NOTE, PaymentLedger, PaymentStatus
from domain.values import ZERO, to_decimal
from repositories import bill_repository, purchase_repository
from services import live_updates as events
from services.live_updates import LiveUpdateRelay, get_relay

logger = logging.getLogger(__name__)

Document = Union[Bill, Purchase]


class DocumentKind(str, Enum):
    BILL = "bill"
    PURCHASE = "purchase"


def initial_ledger(
    total: Decimal,
    status: Union[PaymentStatus, str],
    recorded_at: datetime,
    *,
    amount: Any = None,
    paid_note: str,
    advance_note: str = "Advance at time of billing",
) -> PaymentLedger:
    """
    The ledger a new bill or purchase starts with.

    - paid:    settled in one entry carrying ``paid_note``
    - pending: nothing paid
    - partial: one advance of ``amount`` (required)

    Raises:
        ValidationError: unknown status, or an amount with a non-partial status.
        InvalidAmountError: the advance is <= 0 or exceeds the total.
    """

    status = PaymentStatus.parse(status)
    ledger = PaymentLedger.open(total)

    if status is PaymentStatus.PAID:
        if amount is not None:
            raise ValidationError("an initial payment amount only applies to a partial status", field="amount")
        return ledger.mark_paid(recorded_at, note=paid_note)
    if status is PaymentStatus.PENDING:
        if amount is not None:
            raise ValidationError("an initial payment amount only applies to a partial status", field="amount")
        return ledger
    if amount is None:
        raise ValidationError("a partial payment requires an amount", field="amount")
    return ledger.record_payment(
        to_decimal(amount, field="amount"),
        recorded_at,
        note=advance_note,
        payment_id=str(uuid4()),
    )


def _load(kind: DocumentKind, record_id: int) -> Document:
    if kind is DocumentKind.BILL:
        return bill_repository.get_bill(record_id)
    return purchase_repository.get_purchase(record_id)


def _save(kind: DocumentKind, record_id: int, ledger: PaymentLedger) -> Document:
    if kind is DocumentKind.BILL:
        return bill_repository.save_ledger(record_id, ledger)
    return purchase_repository.save_ledger(record_id, ledger)


def _publish(kind: DocumentKind, document: Document, relay: Optional[LiveUpdateRelay]) -> None:
    relay = relay or get_relay()
    if kind is DocumentKind.BILL:
        relay.publish(events.BILL_UPDATED, bill=document)
    else:
        relay.publish(events.PURCHASE_UPDATED, purchase=document)


def _transition(
    kind: Union[DocumentKind, str],
    record_id: int,
    action: str,
    change: Any,
    relay: Optional[LiveUpdateRelay],
) -> Document:
    kind = DocumentKind(kind)
    document = _load(kind, record_id)
    ledger = change(document.ledger)
    if ledger == document.ledger:
        logger.info(
            f"{kind.value.capitalize()} {record_id}: {action} left the ledger unchanged",
            extra={"kind": kind.value, "record_id": record_id, "action": action},
        )
        return document

    saved = _save(kind, record_id, ledger)
    logger.info(
        f"{kind.value.capitalize()} {record_id}: {action}, status now {saved.status.value}",
        extra={
            "kind": kind.value,
            "record_id": record_id,
            "action": action,
            "amount_paid": str(saved.ledger.amount_paid),
            "amount_pending": str(saved.ledger.amount_pending),
        },
    )
    _publish(kind, saved, relay)
    return saved


def mark_paid(
    kind: Union[DocumentKind, str],
    record_id: int,
    *,
    note: str = FULL_SETTLEMENT_NOTE,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Document:
    """Settle the outstanding amount in one entry. Idempotent."""

    now = now or datetime.now(timezone.utc)
    return _transition(kind, record_id, "mark paid", lambda ledger: ledger.mark_paid(now, note=note), relay)


def mark_pending(
    kind: Union[DocumentKind, str],
    record_id: int,
    *,
    relay: Optional[LiveUpdateRelay] = None,
) -> Document:
    """Clear every recorded payment. Idempotent."""

    return _transition(kind, record_id, "mark pending", lambda ledger: ledger.mark_pending(), relay)


def record_payment(
    kind: Union[DocumentKind, str],
    record_id: int,
    amount: Any,
    *,
    note: str = "",
    payment_id: Optional[str] = None,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Document:
    """
    Record a payment against a bill or purchase.

    ``payment_id`` makes the call safe to retry: a payment id already in the
    history is ignored. One is generated when not supplied.

    Raises:
        ValidationError: amount is not a number.
        InvalidAmountError: amount <= 0 or greater than the pending amount.
        NotFoundError: no such bill or purchase.

    Example:
        bill = record_payment("bill", 42, "500", note="cash")
        bill.ledger.amount_pending  # Decimal("680") for a 1180 bill
    """

    value = to_decimal(amount, field="amount")
    if value <= ZERO:
        raise InvalidAmountError(value)
    now = now or datetime.now(timezone.utc)
    token = payment_id or str(uuid4())
    return _transition(
        kind,
        record_id,
        "record payment",
        lambda ledger: ledger.record_payment(value, now, note=note, payment_id=token),
        relay,
    )


def change_status(
    kind: Union[DocumentKind, str],
    record_id: int,
    status: Union[PaymentStatus, str],
    *,
    amount: Any = None,
    note: str = "",
    payment_id: Optional[str] = None,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Document:
    """Move a document to ``status``; a partial status needs an amount."""

    target = PaymentStatus.parse(status)
    value = to_decimal(amount, field="amount") if amount is not None else None
    if target is PaymentStatus.PARTIAL:
        if value is None:
            raise ValidationError("a partial payment requires an amount", field="amount")
        if value <= ZERO:
            raise InvalidAmountError(value)
    now = now or datetime.now(timezone.utc)
    token = payment_id or str(uuid4())
    return _transition(
        kind,
        record_id,
        f"change status to {target.value}",
        lambda ledger: ledger.change_status(target, now, amount=value, note=note, payment_id=token),
        relay,
    )


__all__ = [
    "DocumentKind",
    "change_status",
    "initial_ledger",
    "mark_paid",
    "mark_pending",
    "record_payment",
]
