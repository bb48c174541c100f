"""
Tests for `services/payment_service.py`.

Covers contract rules:
- record_payment persists the new ledger and publishes bill:updated / purchase:updated.
- The 1180 scenario: 500 leaves 680 pending (partial), then mark_paid settles it.
- An invalid amount raises InvalidAmountError and leaves the stored ledger unchanged.
- Non-positive or missing partial amounts are rejected before the bill is read.
- Retrying with the same payment id does not double count and publishes nothing.
- mark_pending resets the ledger.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from domain.errors import InvalidAmountError, NotFoundError, ValidationError
from domain.invoice import Bill, PartySnapshot, Purchase, compute_totals
from domain.line_item import LineItem
from domain.payment import PaymentLedger, PaymentStatus
from repositories import bill_repository, purchase_repository
from services import payment_service

NOW = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)


def _items():
    return (LineItem(product_ref=1, quantity=Decimal("10"), unit_price=Decimal("100"), tax_rate=Decimal("18")),)


@pytest.fixture
def bill(fake_db) -> Bill:
    items = _items()
    totals = compute_totals(items, "same")
    return bill_repository.insert_bill(
        Bill(
            bill_id=None,
            customer=PartySnapshot(name="Asha Traders"),
            items=items,
            totals=totals,
            ledger=PaymentLedger.open(totals.grand_total),
            created_at=NOW,
        )
    )


def test_partial_then_paid(bill, relay, fake_db) -> None:
    partial = payment_service.record_payment("bill", bill.bill_id, "500", note="cash", now=NOW, relay=relay)

    assert partial.status is PaymentStatus.PARTIAL
    assert partial.ledger.amount_pending == Decimal("680")
    assert fake_db.row("bills", bill.bill_id)["payment_status"] == "partial"

    paid = payment_service.mark_paid("bill", bill.bill_id, now=NOW, relay=relay)

    assert paid.status is PaymentStatus.PAID
    assert paid.ledger.history[-1].amount == Decimal("680")
    assert [e.name for e in relay.received] == ["bill:updated", "bill:updated"]


def test_invalid_amount_leaves_stored_ledger(bill, relay, fake_db) -> None:
    with pytest.raises(InvalidAmountError):
        payment_service.record_payment("bill", bill.bill_id, "1180.50", now=NOW, relay=relay)

    with pytest.raises(ValidationError):
        payment_service.record_payment("bill", bill.bill_id, "five hundred", now=NOW, relay=relay)

    assert bill_repository.get_bill(bill.bill_id).ledger == bill.ledger
    assert ("bills", "update") not in fake_db.calls
    assert relay.received == []


def test_amount_errors_are_raised_before_any_read(bill, relay, fake_db) -> None:
    calls_before = list(fake_db.calls)

    with pytest.raises(InvalidAmountError):
        payment_service.record_payment("bill", bill.bill_id, "0", now=NOW, relay=relay)

    with pytest.raises(InvalidAmountError):
        payment_service.change_status("bill", bill.bill_id, "partial", amount="-5", now=NOW, relay=relay)

    with pytest.raises(ValidationError):
        payment_service.change_status("bill", bill.bill_id, "partial", now=NOW, relay=relay)

    assert fake_db.calls == calls_before
    assert relay.received == []


def test_retry_with_same_payment_id_is_ignored(bill, relay) -> None:
    payment_service.record_payment("bill", bill.bill_id, "500", payment_id="txn-1", now=NOW, relay=relay)
    again = payment_service.record_payment("bill", bill.bill_id, "500", payment_id="txn-1", now=NOW, relay=relay)

    assert again.ledger.amount_paid == Decimal("500")
    assert len(relay.received) == 1


def test_mark_paid_twice_writes_once(bill, relay) -> None:
    payment_service.mark_paid("bill", bill.bill_id, now=NOW, relay=relay)
    payment_service.mark_paid("bill", bill.bill_id, now=NOW, relay=relay)

    assert len(relay.received) == 1


def test_mark_pending_and_change_status(bill, relay) -> None:
    payment_service.change_status("bill", bill.bill_id, "partial", amount="200", now=NOW, relay=relay)
    reset = payment_service.mark_pending("bill", bill.bill_id, relay=relay)

    assert reset.status is PaymentStatus.PENDING
    assert reset.ledger.history == ()

    with pytest.raises(ValidationError):
        payment_service.change_status("bill", bill.bill_id, "partial", now=NOW, relay=relay)


def test_purchase_payment_publishes_purchase_updated(fake_db, relay) -> None:
    items = _items()
    totals = compute_totals(items, "other")
    purchase = purchase_repository.insert_purchase(
        Purchase(
            purchase_id=None,
            supplier=PartySnapshot(name="Shree Cement Depot"),
            invoice_no="INV-1",
            purchase_date=date(2025, 7, 1),
            items=items,
            totals=totals,
            ledger=PaymentLedger.open(totals.grand_total),
            created_at=NOW,
        )
    )

    updated = payment_service.record_payment("purchase", purchase.purchase_id, 180, now=NOW, relay=relay)

    assert updated.ledger.amount_pending == Decimal("1000")
    assert [e.name for e in relay.received] == ["purchase:updated"]


def test_unknown_bill(fake_db, relay) -> None:
    with pytest.raises(NotFoundError):
        payment_service.mark_paid("bill", 999, now=NOW, relay=relay)
