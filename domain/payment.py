"""
Domain: Payment tracking for bills and purchases.

States:
- pending: nothing paid (amount_paid == 0)
- partial: 0 < amount_paid < total
- paid:    amount_pending <= PAYMENT_EPSILON

Transitions:
- mark_paid:      settle the remainder in one entry; valid from any state; idempotent.
- mark_pending:   reset to nothing paid and clear history; valid from any state; idempotent.
- record_payment: append one payment with 0 < amount <= amount_pending.

Invariants:
- amount_paid + amount_pending == total_amount
- amount_paid >= 0 and amount_pending >= 0
- sum(entry.amount for entry in history) == amount_paid
- status is derived from the ledger and cannot disagree with amount_pending.

Ledgers are immutable. Every transition returns a new ledger; a failed
transition leaves the original untouched.

Payments may carry a payment_id. Replaying a payment whose id is already in
the history is a no-op, so a client retrying after an ambiguous network
failure cannot double-count.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .errors import InvalidAmountError, ValidationError
from .values import PAYMENT_EPSILON, ZERO, require_utc_timestamp, within_tolerance

FULL_SETTLEMENT_NOTE = "full settlement"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"

    @staticmethod
    def parse(value: object) -> "PaymentStatus":
        if isinstance(value, PaymentStatus):
            return value
        try:
            return PaymentStatus(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"payment status must be one of pending, partial, paid; got {value!r}",
                field="payment_status",
            ) from None


@dataclass(frozen=True, slots=True)
class PaymentEntry:
    """One received (or paid out) amount in a ledger's history."""

    amount: Decimal
    recorded_at: datetime
    note: str = ""
    payment_id: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("recorded_at", self.recorded_at)


@dataclass(frozen=True, slots=True)
class PaymentLedger:
    total_amount: Decimal
    amount_paid: Decimal = ZERO
    amount_pending: Decimal = ZERO
    history: Tuple[PaymentEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.total_amount < ZERO:
            raise ValidationError("total_amount must be >= 0", field="total_amount")
        if self.amount_paid < ZERO:
            raise ValidationError("amount_paid must be >= 0", field="amount_paid")
        if self.amount_pending < ZERO:
            raise ValidationError("amount_pending must be >= 0", field="amount_pending")
        if not within_tolerance(self.amount_paid + self.amount_pending, self.total_amount):
            raise ValidationError(
                "amount_paid + amount_pending must equal total_amount "
                f"({self.amount_paid} + {self.amount_pending} != {self.total_amount})"
            )
        if not within_tolerance(self.history_total, self.amount_paid):
            raise ValidationError(
                f"payment history sums to {self.history_total}, expected {self.amount_paid}"
            )

    @staticmethod
    def open(total_amount: Decimal) -> "PaymentLedger":
        """A fresh ledger with nothing paid."""

        return PaymentLedger(
            total_amount=total_amount,
            amount_paid=ZERO,
            amount_pending=total_amount,
            history=(),
        )

    @property
    def status(self) -> PaymentStatus:
        if self.amount_pending <= PAYMENT_EPSILON:
            return PaymentStatus.PAID
        if self.amount_paid <= ZERO:
            return PaymentStatus.PENDING
        return PaymentStatus.PARTIAL

    @property
    def history_total(self) -> Decimal:
        return sum((entry.amount for entry in self.history), ZERO)

    def has_payment(self, payment_id: str) -> bool:
        return any(entry.payment_id == payment_id for entry in self.history)

    def mark_paid(
        self,
        recorded_at: datetime,
        *,
        note: str = FULL_SETTLEMENT_NOTE,
        payment_id: Optional[str] = None,
    ) -> "PaymentLedger":
        """Settle whatever is outstanding. A settled ledger is returned as-is."""

        require_utc_timestamp("recorded_at", recorded_at)
        if self.amount_pending <= ZERO:
            return self

        entry = PaymentEntry(
            amount=self.amount_pending,
            recorded_at=recorded_at,
            note=note,
            payment_id=payment_id,
        )
        return replace(
            self,
            amount_paid=self.total_amount,
            amount_pending=ZERO,
            history=self.history + (entry,),
        )

    def mark_pending(self) -> "PaymentLedger":
        """Undo all recorded payments."""

        if self.amount_paid == ZERO and not self.history:
            return self
        return PaymentLedger.open(self.total_amount)

    def record_payment(
        self,
        amount: Decimal,
        recorded_at: datetime,
        *,
        note: str = "",
        payment_id: Optional[str] = None,
    ) -> "PaymentLedger":
        """
        Append a payment of ``amount``.

        Raises:
            InvalidAmountError: amount <= 0 or amount > amount_pending.
        """

        require_utc_timestamp("recorded_at", recorded_at)
        if payment_id is not None and self.has_payment(payment_id):
            return self

        if amount <= ZERO or amount > self.amount_pending:
            raise InvalidAmountError(amount, self.amount_pending)

        entry = PaymentEntry(
            amount=amount,
            recorded_at=recorded_at,
            note=note,
            payment_id=payment_id,
        )
        return replace(
            self,
            amount_paid=self.amount_paid + amount,
            amount_pending=self.amount_pending - amount,
            history=self.history + (entry,),
        )

    def change_status(
        self,
        target: PaymentStatus,
        recorded_at: datetime,
        *,
        amount: Optional[Decimal] = None,
        note: str = "",
        payment_id: Optional[str] = None,
    ) -> "PaymentLedger":
        """
        Map a requested status onto a transition.

        A partial status cannot be reached without an amount to record.
        """

        if target is PaymentStatus.PAID:
            return self.mark_paid(recorded_at, note=note or FULL_SETTLEMENT_NOTE, payment_id=payment_id)
        if target is PaymentStatus.PENDING:
            return self.mark_pending()
        if amount is None:
            raise ValidationError("a partial payment requires an amount", field="amount")
        return self.record_payment(amount, recorded_at, note=note, payment_id=payment_id)


__all__ = [
    "FULL_SETTLEMENT_NOTE",
    "PaymentEntry",
    "PaymentLedger",
    "PaymentStatus",
]
