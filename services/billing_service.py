"""
Billing service for issuing sales invoices.

Handles:
- Totals and tax breakdown via the invoice builder
- All-or-nothing stock deduction together with the bill insert
- Initial payment status (paid / pending / partial advance)
- Customer upsert with last_bill_date
- Low stock warnings for the products just sold
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

import config
from domain.errors import GatewayError
from domain.inventory import Product, StockAdjustment, plan_sale
from domain.invoice import Bill, PartySnapshot, compute_totals
from domain.line_item import LineItem
from domain.party import Customer
from domain.payment import PaymentStatus
from domain.tax import Jurisdiction
from domain.values import decimal_to_wire
from repositories import bill_repository, inventory_repository
from services import live_updates as events
from services import party_service, stock_service
from services.live_updates import LiveUpdateRelay, get_relay
from services.payment_service import initial_ledger

logger = logging.getLogger(__name__)

PAID_AT_BILLING_NOTE = "Paid at time of billing"


@dataclass(frozen=True, slots=True)
class CreateBillRequest:
    """
    Everything needed to issue a bill.

    jurisdiction: "same" (intra-state, SGST+CGST) or "other" (IGST)
    initial_payment: advance received now; only with payment_status="partial"
    """
    customer: PartySnapshot
    items: Sequence[LineItem]
    jurisdiction: Union[Jurisdiction, str]
    payment_status: Union[PaymentStatus, str] = PaymentStatus.PENDING
    initial_payment: Any = None
    invoice_no: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CreateBillResult:
    bill: Bill
    customer: Optional[Customer] = None
    low_stock_warnings: List[str] = field(default_factory=list)


def fill_line_snapshot(line: LineItem, product: Product) -> LineItem:
    """Copy the product's name/size/unit onto a line that does not carry them."""

    return replace(
        line,
        name=line.name or product.name,
        size=line.size or product.size,
        unit=line.unit or product.unit,
    )


def low_stock_warnings(
    products: Dict[int, Product],
    adjustments: Sequence[StockAdjustment],
    threshold: Decimal,
) -> List[str]:
    warnings: List[str] = []
    for adjustment in adjustments:
        if adjustment.after < threshold:
            product = products[adjustment.product_id]
            unit = f" {product.unit}" if product.unit else ""
            warnings.append(f"{product.name}: {decimal_to_wire(adjustment.after)}{unit} remaining")
    return warnings


def publish_inventory_refresh(relay: LiveUpdateRelay) -> None:
    """Publish the full product list after a stock movement."""

    try:
        products = inventory_repository.list_products()
    except GatewayError as e:
        # The stock change is committed; views stay stale until they reload.
        logger.warning("Inventory refresh skipped", extra={"error": str(e)})
        return
    relay.publish(events.INVENTORY_REFRESH, items=products)


def create_bill(
    request: CreateBillRequest,
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> CreateBillResult:
    """
    Issue a bill and deduct its stock.

    Process:
    1. Compute totals (rejects empty bills and non-positive quantities)
    2. Build the initial ledger from the requested payment status
    3. Load the referenced products and plan the stock deductions
       (InsufficientStockError if any product would go negative)
    4. Apply the deductions and insert the bill as one unit; on failure the
       deductions are reverted and the error propagates
    5. Upsert the customer and stamp last_bill_date
    6. Publish bill:created and inventory:refresh

    Raises:
        ValidationError / InvalidAmountError: before any gateway write.
        InsufficientStockError: nothing is written.
        GatewayError: nothing is committed.

    Example:
        result = create_bill(CreateBillRequest(
            customer=PartySnapshot(name="Asha Traders", state="same"),
            items=[cement.line(Decimal("10"))],
            jurisdiction="same",
            payment_status="paid",
        ))
        result.bill.totals.grand_total  # Decimal("1180") for 10 x 100 @ 18%
    """

    now = now or datetime.now(timezone.utc)
    relay = relay or get_relay()

    totals = compute_totals(request.items, request.jurisdiction)
    ledger = initial_ledger(
        totals.grand_total,
        request.payment_status,
        now,
        amount=request.initial_payment,
        paid_note=PAID_AT_BILLING_NOTE,
    )

    products = inventory_repository.get_products_by_ids([line.product_ref for line in request.items])
    adjustments = plan_sale(products, request.items)
    items = tuple(fill_line_snapshot(line, products[line.product_ref]) for line in request.items)

    bill = Bill(
        bill_id=None,
        customer=request.customer,
        items=items,
        totals=totals,
        ledger=ledger,
        invoice_no=request.invoice_no,
        created_at=now,
    )
    saved = stock_service.apply_adjustments(
        adjustments, lambda: bill_repository.insert_bill(bill, now=now), now=now
    )

    logger.info(
        f"Bill created: {saved.bill_id}",
        extra={
            "bill_id": saved.bill_id,
            "customer": saved.customer.name,
            "total": str(saved.totals.grand_total),
            "status": saved.status.value,
            "lines": len(saved.items),
        },
    )

    customer: Optional[Customer] = None
    try:
        customer = party_service.record_customer_for_bill(saved.customer, billed_at=now, relay=relay)
    except GatewayError as e:
        # The bill stands; the customer directory is secondary.
        logger.warning(
            f"Customer not recorded for bill {saved.bill_id}",
            extra={"bill_id": saved.bill_id, "customer": saved.customer.name, "error": str(e)},
        )

    relay.publish(events.BILL_CREATED, bill=saved)
    publish_inventory_refresh(relay)

    return CreateBillResult(
        bill=saved,
        customer=customer,
        low_stock_warnings=low_stock_warnings(products, adjustments, config.LOW_STOCK_THRESHOLD),
    )


def list_bills() -> List[Bill]:
    return bill_repository.list_bills()


def get_bill(bill_id: int) -> Bill:
    return bill_repository.get_bill(bill_id)


def delete_bill(bill_id: int, *, relay: Optional[LiveUpdateRelay] = None) -> None:
    """
    Administrative removal of a bill. Stock is not restored; use the
    catalog's add_stock for that.
    """

    bill_repository.delete_bill(bill_id)
    logger.warning(f"Bill deleted: {bill_id}", extra={"bill_id": bill_id})
    (relay or get_relay()).publish(events.BILL_DELETED, id=bill_id)


__all__ = [
    "CreateBillRequest",
    "CreateBillResult",
    "PAID_AT_BILLING_NOTE",
    "create_bill",
    "delete_bill",
    "get_bill",
    "list_bills",
]
