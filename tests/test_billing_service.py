"""
Tests for `services/billing_service.py`.

Covers contract rules:
- A bill deducts stock and is stored with totals and an initial ledger.
- A paid bill is settled at creation with note "Paid at time of billing".
- Selling 15 against stock 10 fails with InsufficientStockError and writes nothing.
- If the bill insert fails, stock already deducted is restored.
- If another writer moves a product mid-sale, earlier deductions are restored.
- The customer is upserted with last_bill_date; a failure there does not undo the bill.
- bill:created and inventory:refresh are published after commit, never on failure.
- Low stock warnings list products left below the threshold.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.errors import GatewayError, InsufficientStockError, InvalidAmountError, StockConflictError, ValidationError
from domain.invoice import PartySnapshot
from domain.line_item import LineItem
from domain.payment import PaymentStatus
from services.billing_service import CreateBillRequest, PAID_AT_BILLING_NOTE, create_bill

NOW = datetime(2025, 5, 10, 11, 0, tzinfo=timezone.utc)
CUSTOMER = PartySnapshot(name="Asha Traders", phone="9800000001", state="same")


@pytest.fixture
def stocked(fake_db):
    fake_db.seed(
        "inventory",
        {"id": 1, "name": "Portland Cement", "quantity": "10", "price": "350", "gst": "28", "unit": "bag"},
        {"id": 2, "name": "Tile", "quantity": "50", "price": "100", "gst": "18", "unit": "box"},
    )
    return fake_db


def _line(product_id: int, quantity: str, price: str = "100", rate: str = "18") -> LineItem:
    return LineItem(
        product_ref=product_id, quantity=Decimal(quantity), unit_price=Decimal(price), tax_rate=Decimal(rate)
    )


def _quantity(fake_db, product_id: int) -> Decimal:
    return Decimal(str(fake_db.row("inventory", product_id)["quantity"]))


def test_paid_bill_deducts_stock_and_settles(stocked, relay) -> None:
    result = create_bill(
        CreateBillRequest(customer=CUSTOMER, items=[_line(2, "10")], jurisdiction="same", payment_status="paid"),
        now=NOW,
        relay=relay,
    )

    bill = result.bill
    assert bill.bill_id is not None
    assert bill.totals.grand_total == Decimal("1180")
    assert bill.totals.tax_breakdown.sgst == Decimal("90")
    assert bill.status is PaymentStatus.PAID
    assert bill.ledger.history[0].note == PAID_AT_BILLING_NOTE
    assert bill.items[0].name == "Tile"
    assert _quantity(stocked, 2) == Decimal("40")
    assert [e.name for e in relay.received] == ["customer:created", "bill:created", "inventory:refresh"]


def test_sale_exceeding_stock_writes_nothing(stocked, relay) -> None:
    with pytest.raises(InsufficientStockError) as exc:
        create_bill(
            CreateBillRequest(customer=CUSTOMER, items=[_line(1, "15", "350", "28")], jurisdiction="same"),
            now=NOW,
            relay=relay,
        )

    assert exc.value.available == Decimal("10")
    assert _quantity(stocked, 1) == Decimal("10")
    assert stocked.rows("bills") == []
    assert relay.received == []


def test_failed_insert_restores_stock(stocked, relay) -> None:
    stocked.fail_next("bills", "insert")

    with pytest.raises(GatewayError):
        create_bill(
            CreateBillRequest(
                customer=CUSTOMER, items=[_line(1, "4", "350", "28"), _line(2, "5")], jurisdiction="other"
            ),
            now=NOW,
            relay=relay,
        )

    assert _quantity(stocked, 1) == Decimal("10")
    assert _quantity(stocked, 2) == Decimal("50")
    assert stocked.rows("bills") == []
    assert relay.received == []


def test_concurrent_stock_change_rolls_back_earlier_deductions(stocked, relay) -> None:
    def someone_else_sells_tiles(db) -> None:
        db.row("inventory", 2)["quantity"] = "45"

    stocked.before_next("inventory", "update", someone_else_sells_tiles)

    with pytest.raises(StockConflictError):
        create_bill(
            CreateBillRequest(
                customer=CUSTOMER, items=[_line(1, "4", "350", "28"), _line(2, "5")], jurisdiction="same"
            ),
            now=NOW,
            relay=relay,
        )

    assert _quantity(stocked, 1) == Decimal("10")
    assert _quantity(stocked, 2) == Decimal("45")
    assert stocked.rows("bills") == []


def test_partial_initial_payment(stocked, relay) -> None:
    result = create_bill(
        CreateBillRequest(
            customer=CUSTOMER,
            items=[_line(2, "10")],
            jurisdiction="same",
            payment_status="partial",
            initial_payment="500",
        ),
        now=NOW,
        relay=relay,
    )

    assert result.bill.status is PaymentStatus.PARTIAL
    assert result.bill.ledger.amount_pending == Decimal("680")


def test_invalid_initial_payment_is_rejected_before_any_write(stocked, relay) -> None:
    with pytest.raises(InvalidAmountError):
        create_bill(
            CreateBillRequest(
                customer=CUSTOMER,
                items=[_line(2, "10")],
                jurisdiction="same",
                payment_status="partial",
                initial_payment="5000",
            ),
            now=NOW,
            relay=relay,
        )

    with pytest.raises(ValidationError):
        create_bill(CreateBillRequest(customer=CUSTOMER, items=[], jurisdiction="same"), now=NOW, relay=relay)

    assert ("inventory", "update") not in stocked.calls
    assert _quantity(stocked, 2) == Decimal("50")


def test_low_stock_warning_after_sale(stocked, relay) -> None:
    result = create_bill(
        CreateBillRequest(customer=CUSTOMER, items=[_line(1, "7", "350", "28")], jurisdiction="other"),
        now=NOW,
        relay=relay,
    )

    assert result.low_stock_warnings == ["Portland Cement: 3 bag remaining"]


def test_existing_customer_gets_last_bill_date(stocked, relay) -> None:
    stocked.seed("customers", {"id": 5, "name": "asha traders", "phone": None})

    result = create_bill(
        CreateBillRequest(customer=CUSTOMER, items=[_line(2, "1")], jurisdiction="same"),
        now=NOW,
        relay=relay,
    )

    assert result.customer.customer_id == 5
    assert result.customer.last_bill_date == NOW
    assert result.customer.phone == "9800000001"
    assert len(stocked.rows("customers")) == 1


def test_customer_failure_does_not_undo_bill(stocked, relay) -> None:
    stocked.fail_next("customers", "select")

    result = create_bill(
        CreateBillRequest(customer=CUSTOMER, items=[_line(2, "1")], jurisdiction="same"),
        now=NOW,
        relay=relay,
    )

    assert result.customer is None
    assert len(stocked.rows("bills")) == 1
    assert _quantity(stocked, 2) == Decimal("49")
