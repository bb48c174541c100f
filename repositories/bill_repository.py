"""
Bill (sales invoice) repository.

Bills are stored with a denormalised customer snapshot, the line items and
tax breakdown as JSON, and the payment ledger as a JSON tracking object
alongside a ``payment_status`` column kept for filtering. The status column is
always written from the ledger, never independently.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from domain.errors import GatewayError
from domain.invoice import Bill, PartySnapshot
from domain.payment import PaymentLedger
from repositories.gateway import (
    blank_to_none,
    execute,
    first_or_raise,
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

_BILLS_TABLE: str = "bills"


def _row_to_bill(row: Mapping[str, Any]) -> Bill:
    record = f"bill #{row.get('id')}"
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
    return Bill(
        bill_id=int(row["id"]),
        invoice_no=row.get("invoice_no"),
        customer=PartySnapshot(
            name=row.get("customer_name") or "Unknown",
            phone=row.get("customer_phone"),
            gst=row.get("customer_gst"),
            address=row.get("customer_address"),
            state=row.get("customer_state"),
        ),
        items=tuple(items),
        totals=totals,
        ledger=ledger,
        created_at=created_at,
    )


def _ledger_columns(ledger: PaymentLedger) -> dict[str, Any]:
    return {
        "payment_status": ledger.status.value,
        "payment_tracking": ledger_to_wire(ledger),
    }


def list_bills() -> List[Bill]:
    """Fetch every bill, newest first."""

    rows = execute(
        table(_BILLS_TABLE).select("*").order("id", desc=True),
        action="fetch bills",
    )
    return [_row_to_bill(row) for row in rows]


def get_bill(bill_id: int) -> Bill:
    rows = execute(
        table(_BILLS_TABLE).select("*").eq("id", bill_id).limit(1),
        action=f"fetch bill {bill_id}",
    )
    return _row_to_bill(first_or_raise(rows, "Bill", bill_id))


def insert_bill(bill: Bill, *, now: Optional[datetime] = None) -> Bill:
    """Insert a new bill and return it with its server-assigned id."""

    payload: dict[str, Any] = {
        "invoice_no": blank_to_none(bill.invoice_no),
        "customer_name": bill.customer.name.strip(),
        "customer_phone": blank_to_none(bill.customer.phone),
        "customer_gst": blank_to_none(bill.customer.gst),
        "customer_address": blank_to_none(bill.customer.address),
        "customer_state": blank_to_none(bill.customer.state),
        "items": items_to_wire(list(bill.items)),
        "created_at_utc": to_iso_utc(bill.created_at or now or datetime.now(timezone.utc), name="created_at"),
    }
    payload.update(totals_to_columns(bill.totals))
    payload.update(_ledger_columns(bill.ledger))

    rows = execute(table(_BILLS_TABLE).insert(payload), action="create bill")
    if not rows:
        raise GatewayError("Failed to create bill: no row returned")
    return _row_to_bill(rows[0])


def save_ledger(bill_id: int, ledger: PaymentLedger) -> Bill:
    """Persist a bill's ledger (and the status derived from it)."""

    rows = execute(
        table(_BILLS_TABLE).update(_ledger_columns(ledger)).eq("id", bill_id),
        action=f"update payment for bill {bill_id}",
    )
    return _row_to_bill(first_or_raise(rows, "Bill", bill_id))


def delete_bill(bill_id: int) -> None:
    """Administrative removal; not part of the normal bill lifecycle."""

    rows = execute(
        table(_BILLS_TABLE).delete().eq("id", bill_id),
        action=f"delete bill {bill_id}",
    )
    first_or_raise(rows, "Bill", bill_id)


__all__ = [
    "delete_bill",
    "get_bill",
    "insert_bill",
    "list_bills",
    "save_ledger",
]
