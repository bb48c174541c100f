"""
Tests for `domain/payment.py` (the payment tracker).

Covers contract rules:
- A new ledger is pending with amount_pending == total.
- record_payment requires 0 < amount <= amount_pending and appends one entry.
- Status is derived: paid when pending <= 0.01, pending when nothing is paid, else partial.
- mark_paid settles the remainder in one entry and is idempotent.
- mark_pending clears the history and is idempotent.
- A rejected payment leaves the ledger unchanged.
- Replaying a payment_id is a no-op.
- amount_paid + amount_pending == total and sum(history) == amount_paid after every transition.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.errors import InvalidAmountError, ValidationError
from domain.payment import FULL_SETTLEMENT_NOTE, PaymentEntry, PaymentLedger, PaymentStatus

NOW = datetime(2025, 3, 1, 10, 0, 0, tzinfo=timezone.utc)
LATER = NOW + timedelta(days=3)


def _assert_invariants(ledger: PaymentLedger) -> None:
    assert ledger.amount_paid + ledger.amount_pending == ledger.total_amount
    assert ledger.history_total == ledger.amount_paid
    assert ledger.amount_paid >= 0
    assert ledger.amount_pending >= 0


def test_open_ledger_is_pending() -> None:
    ledger = PaymentLedger.open(Decimal("1180"))

    assert ledger.status is PaymentStatus.PENDING
    assert ledger.amount_pending == Decimal("1180")
    assert ledger.history == ()
    _assert_invariants(ledger)


def test_partial_then_final_payment() -> None:
    ledger = PaymentLedger.open(Decimal("1180"))

    partial = ledger.record_payment(Decimal("500"), NOW, note="cash")
    assert partial.status is PaymentStatus.PARTIAL
    assert partial.amount_paid == Decimal("500")
    assert partial.amount_pending == Decimal("680")
    assert len(partial.history) == 1
    _assert_invariants(partial)

    settled = partial.record_payment(Decimal("680"), LATER)
    assert settled.status is PaymentStatus.PAID
    assert settled.amount_pending == Decimal("0")
    assert [e.amount for e in settled.history] == [Decimal("500"), Decimal("680")]
    _assert_invariants(settled)


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("1180.01")])
def test_invalid_amount_leaves_ledger_unchanged(amount: Decimal) -> None:
    ledger = PaymentLedger.open(Decimal("1180"))

    with pytest.raises(InvalidAmountError) as exc:
        ledger.record_payment(amount, NOW)

    assert exc.value.amount_pending == Decimal("1180")
    assert ledger == PaymentLedger.open(Decimal("1180"))


def test_overpayment_after_partial_is_rejected() -> None:
    ledger = PaymentLedger.open(Decimal("1180")).record_payment(Decimal("500"), NOW)

    with pytest.raises(InvalidAmountError):
        ledger.record_payment(Decimal("680.01"), LATER)


def test_mark_paid_settles_remainder_in_one_entry() -> None:
    ledger = PaymentLedger.open(Decimal("1180")).record_payment(Decimal("500"), NOW)

    settled = ledger.mark_paid(LATER)

    assert settled.status is PaymentStatus.PAID
    assert settled.history[-1].amount == Decimal("680")
    assert settled.history[-1].note == FULL_SETTLEMENT_NOTE
    _assert_invariants(settled)


def test_mark_paid_is_idempotent() -> None:
    once = PaymentLedger.open(Decimal("1180")).mark_paid(NOW)
    twice = once.mark_paid(LATER)

    assert twice == once
    assert len(twice.history) == 1


def test_mark_pending_resets_and_is_idempotent() -> None:
    ledger = PaymentLedger.open(Decimal("1180")).record_payment(Decimal("500"), NOW)

    reset = ledger.mark_pending()
    assert reset.status is PaymentStatus.PENDING
    assert reset.amount_paid == Decimal("0")
    assert reset.amount_pending == Decimal("1180")
    assert reset.history == ()
    assert reset.mark_pending() == reset


def test_residual_below_epsilon_counts_as_paid() -> None:
    ledger = PaymentLedger.open(Decimal("100.005")).record_payment(Decimal("100"), NOW)

    assert ledger.amount_pending == Decimal("0.005")
    assert ledger.status is PaymentStatus.PAID


def test_replayed_payment_id_is_ignored() -> None:
    first = PaymentLedger.open(Decimal("1180")).record_payment(Decimal("500"), NOW, payment_id="p-1")

    replay = first.record_payment(Decimal("500"), LATER, payment_id="p-1")

    assert replay == first
    assert replay.amount_paid == Decimal("500")


def test_transitions_do_not_mutate_original() -> None:
    ledger = PaymentLedger.open(Decimal("1180"))
    ledger.record_payment(Decimal("500"), NOW)
    ledger.mark_paid(NOW)

    assert ledger.amount_paid == Decimal("0")
    assert ledger.history == ()


def test_change_status_maps_onto_transitions() -> None:
    ledger = PaymentLedger.open(Decimal("1180"))

    partial = ledger.change_status(PaymentStatus.PARTIAL, NOW, amount=Decimal("200"))
    assert partial.amount_paid == Decimal("200")

    paid = partial.change_status(PaymentStatus.PAID, NOW)
    assert paid.status is PaymentStatus.PAID

    pending = paid.change_status(PaymentStatus.PENDING, NOW)
    assert pending.status is PaymentStatus.PENDING

    with pytest.raises(ValidationError):
        ledger.change_status(PaymentStatus.PARTIAL, NOW)


def test_ledger_rejects_inconsistent_amounts() -> None:
    with pytest.raises(ValidationError):
        PaymentLedger(total_amount=Decimal("100"), amount_paid=Decimal("60"), amount_pending=Decimal("60"))

    with pytest.raises(ValidationError):
        # history does not explain amount_paid
        PaymentLedger(total_amount=Decimal("100"), amount_paid=Decimal("60"), amount_pending=Decimal("40"))


def test_ledger_sums_hold_within_epsilon() -> None:
    ledger = PaymentLedger(
        total_amount=Decimal("0.3"),
        amount_paid=Decimal("0.30000000000000004"),
        amount_pending=Decimal("0"),
        history=(PaymentEntry(amount=Decimal("0.3"), recorded_at=NOW),),
    )

    assert ledger.status is PaymentStatus.PAID


def test_payment_timestamps_must_be_utc() -> None:
    ledger = PaymentLedger.open(Decimal("100"))

    with pytest.raises(ValueError):
        ledger.record_payment(Decimal("10"), datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        ledger.mark_paid(datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=5, minutes=30))))


def test_parse_status() -> None:
    assert PaymentStatus.parse(" PAID ") is PaymentStatus.PAID
    with pytest.raises(ValidationError):
        PaymentStatus.parse("refunded")
