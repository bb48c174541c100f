"""
Purchase (supplier invoice) repository.

Mirrors the bill repository: supplier snapshot columns, JSON items and tax
breakdown, and a JSON payment ledger with a derived ``payment_status``
column. An optional scanned bill image is stored as an encoded string.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from domain.errors import GatewayError
from domain.invoice import PartySnapshot, Purchase
from domain.payment import PaymentLedger
from repositories.gateway import (
    blank_to_none,
    execute,
    first_or_raise,
    parse_date,
    parse_utc_datetime,
    table,
    to_iso_utc,
)
from repositories.payloads import (
    items_from_wire,
    items_to_wire,
    ledger_from_wire,
    ledger_to_wire,
    totals_from_row,
    totals_to_columns,
)

_PURCHASES_TABLE: str = "purchases"

# The image column is large; list views leave it out.
_LIST_COLUMNS = (
    "id, supplier_name, supplier_phone, supplier_gst, invoice_no, purchase_date, items, "
    "subtotal, gst_breakdown, total_gst, total, payment_status, payment_tracking, created_at_utc"
)


def _row_to_purchase(row: Mapping[str, Any]) -> Purchase:
    record = f"purchase #{row.get('id')}"
    created_at = parse_utc_datetime(row.get("created_at_utc"))
    items = items_from_wire(row.get("items"), record=record)
    totals = totals_from_row(row, items, record=record)
    ledger = ledger_from_wire(
        row.get("payment_tracking"),
        status=row.get("payment_status"),
        total=totals.grand_total,
        created_at=created_at,
        record=record,
    )
    purchase_date = parse_date(row.get("purchase_date"))
    if purchase_date is None:
        purchase_date = (created_at or datetime.now(timezone.utc)).date()

    return Purchase(
        purchase_id=int(row["id"]),
        supplier=PartySnapshot(
            name=row.get("supplier_name") or "Unknown",
            phone=row.get("supplier_phone"),
            gst=row.get("supplier_gst"),
        ),
        invoice_no=str(row.get("invoice_no") or ""),
        purchase_date=purchase_date,
        items=tuple(items),
        totals=totals,
        ledger=ledger,
        bill_image=row.get("bill_image"),
        created_at=created_at,
    )


def _ledger_columns(ledger: PaymentLedger) -> dict[str, Any]:
    return {
        "payment_status": ledger.status.value,
        "payment_tracking": ledger_to_wire(ledger),
    }


def list_purchases() -> List[Purchase]:
    """Fetch every purchase, newest first, without bill images."""

    rows = execute(
        table(_PURCHASES_TABLE).select(_LIST_COLUMNS).order("id", desc=True),
        action="fetch purchases",
    )
    return [_row_to_purchase(row) for row in rows]


def get_purchase(purchase_id: int) -> Purchase:
    rows = execute(
        table(_PURCHASES_TABLE).select("*").eq("id", purchase_id).limit(1),
        action=f"fetch purchase {purchase_id}",
    )
    return _row_to_purchase(first_or_raise(rows, "Purchase", purchase_id))


def insert_purchase(purchase: Purchase, *, now: Optional[datetime] = None) -> Purchase:
    payload: dict[str, Any] = {
        "supplier_name": purchase.supplier.name.strip(),
        "supplier_phone": blank_to_none(purchase.supplier.phone),
        "supplier_gst": blank_to_none(purchase.supplier.gst),
        "invoice_no": purchase.invoice_no,
        "purchase_date": purchase.purchase_date.isoformat(),
        "items": items_to_wire(list(purchase.items)),
        "bill_image": purchase.bill_image,
        "created_at_utc": to_iso_utc(
            purchase.created_at or now or datetime.now(timezone.utc), name="created_at"
        ),
    }
    payload.update(totals_to_columns(purchase.totals))
    payload.update(_ledger_columns(purchase.ledger))

    rows = execute(table(_PURCHASES_TABLE).insert(payload), action="create purchase")
    if not rows:
        raise GatewayError("Failed to create purchase: no row returned")
    return _row_to_purchase(rows[0])


def save_ledger(purchase_id: int, ledger: PaymentLedger) -> Purchase:
    rows = execute(
        table(_PURCHASES_TABLE).update(_ledger_columns(ledger)).eq("id", purchase_id),
        action=f"update payment for purchase {purchase_id}",
    )
    return _row_to_purchase(first_or_raise(rows, "Purchase", purchase_id))


def delete_purchase(purchase_id: int) -> None:
    """Administrative removal; not part of the normal purchase lifecycle."""

    rows = execute(
        table(_PURCHASES_TABLE).delete().eq("id", purchase_id),
        action=f"delete purchase {purchase_id}",
    )
    first_or_raise(rows, "Purchase", purchase_id)


__all__ = [
    "delete_purchase",
    "get_purchase",
    "insert_purchase",
    "list_purchases",
    "save_ledger",
]
