"""
Purchase service for recording goods received from suppliers.

Handles:
- Totals and tax breakdown via the invoice builder
- Invoice number and date defaults
- All-or-nothing stock addition together with the purchase insert
- Supplier upsert
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Sequence, Union

from domain.errors import GatewayError
from domain.inventory import plan_purchase
from domain.invoice import PartySnapshot, Purchase, compute_totals
from domain.line_item import LineItem
from domain.party import Supplier
from domain.payment import PaymentStatus
from domain.tax import Jurisdiction
from repositories import inventory_repository, purchase_repository
from services import live_updates as events
from services import party_service, stock_service
from services.billing_service import fill_line_snapshot, publish_inventory_refresh
from services.live_updates import LiveUpdateRelay, get_relay
from services.payment_service import initial_ledger

logger = logging.getLogger(__name__)

PAID_AT_PURCHASE_NOTE = "Paid at time of purchase"


@dataclass(frozen=True, slots=True)
class CreatePurchaseRequest:
    """
    A supplier invoice to record.

    invoice_no: defaults to INV-<epoch milliseconds>
    purchase_date: defaults to today (UTC)
    jurisdiction: defaults to "same" (intra-state supplier)
    bill_image: optional encoded scan of the supplier's invoice
    """
    supplier: PartySnapshot
    items: Sequence[LineItem]
    jurisdiction: Union[Jurisdiction, str] = Jurisdiction.SAME
    invoice_no: Optional[str] = None
    purchase_date: Optional[date] = None
    payment_status: Union[PaymentStatus, str] = PaymentStatus.PENDING
    initial_payment: Any = None
    bill_image: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CreatePurchaseResult:
    purchase: Purchase
    supplier: Optional[Supplier] = None


def default_invoice_no(now: datetime) -> str:
    return f"INV-{int(now.timestamp() * 1000)}"


def create_purchase(
    request: CreatePurchaseRequest,
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> CreatePurchaseResult:
    """
    Record a purchase and add its quantities to stock.

    Process:
    1. Compute totals and the initial ledger
    2. Load the referenced products and plan the stock additions
    3. Apply the additions and insert the purchase as one unit
    4. Upsert the supplier
    5. Publish purchase:created and inventory:refresh

    Raises:
        ValidationError: empty purchase, bad quantity or unknown product.
        GatewayError: nothing is committed.
    """

    now = now or datetime.now(timezone.utc)
    relay = relay or get_relay()

    totals = compute_totals(request.items, request.jurisdiction)
    ledger = initial_ledger(
        totals.grand_total,
        request.payment_status,
        now,
        amount=request.initial_payment,
        paid_note=PAID_AT_PURCHASE_NOTE,
        advance_note="Advance at time of purchase",
    )

    products = inventory_repository.get_products_by_ids([line.product_ref for line in request.items])
    adjustments = plan_purchase(products, request.items)
    items = tuple(fill_line_snapshot(line, products[line.product_ref]) for line in request.items)

    purchase = Purchase(
        purchase_id=None,
        supplier=request.supplier,
        invoice_no=(request.invoice_no or "").strip() or default_invoice_no(now),
        purchase_date=request.purchase_date or now.date(),
        items=items,
        totals=totals,
        ledger=ledger,
        bill_image=request.bill_image,
        created_at=now,
    )
    saved = stock_service.apply_adjustments(
        adjustments, lambda: purchase_repository.insert_purchase(purchase, now=now), now=now
    )

    logger.info(
        f"Purchase created: {saved.purchase_id}",
        extra={
            "purchase_id": saved.purchase_id,
            "supplier": saved.supplier.name,
            "invoice_no": saved.invoice_no,
            "total": str(saved.totals.grand_total),
            "status": saved.status.value,
        },
    )

    supplier: Optional[Supplier] = None
    try:
        supplier = party_service.record_supplier_for_purchase(saved.supplier, relay=relay)
    except GatewayError as e:
        logger.warning(
            f"Supplier not recorded for purchase {saved.purchase_id}",
            extra={"purchase_id": saved.purchase_id, "supplier": saved.supplier.name, "error": str(e)},
        )

    relay.publish(events.PURCHASE_CREATED, purchase=saved)
    publish_inventory_refresh(relay)

    return CreatePurchaseResult(purchase=saved, supplier=supplier)


def list_purchases() -> List[Purchase]:
    return purchase_repository.list_purchases()


def get_purchase(purchase_id: int) -> Purchase:
    return purchase_repository.get_purchase(purchase_id)


def delete_purchase(purchase_id: int, *, relay: Optional[LiveUpdateRelay] = None) -> None:
    """Administrative removal. Stock added by the purchase stays in place."""

    purchase_repository.delete_purchase(purchase_id)
    logger.warning(f"Purchase deleted: {purchase_id}", extra={"purchase_id": purchase_id})
    (relay or get_relay()).publish(events.PURCHASE_DELETED, id=purchase_id)


__all__ = [
    "CreatePurchaseRequest",
    "CreatePurchaseResult",
    "PAID_AT_PURCHASE_NOTE",
    "create_purchase",
    "default_invoice_no",
    "delete_purchase",
    "get_purchase",
    "list_purchases",
]
