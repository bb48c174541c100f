"""Proforma (quotation) repository. Proformas carry no ledger and no stock effect."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from domain.errors import GatewayError
from domain.invoice import PartySnapshot, Proforma
from repositories.gateway import (
    blank_to_none,
    execute,
    first_or_raise,
    parse_utc_datetime,
    table,
    to_iso_utc,
)
from repositories.payloads import items_from_wire, items_to_wire, totals_from_row, totals_to_columns

_PROFORMA_TABLE: str = "proforma_invoices"


def _row_to_proforma(row: Mapping[str, Any]) -> Proforma:
    record = f"proforma #{row.get('id')}"
    items = items_from_wire(row.get("items"), record=record)
    return Proforma(
        proforma_id=int(row["id"]),
        proforma_no=row.get("proforma_no"),
        customer=PartySnapshot(
            name=row.get("customer_name") or "Unknown",
            phone=row.get("customer_phone"),
            gst=row.get("customer_gst"),
            address=row.get("customer_address"),
            state=row.get("customer_state"),
        ),
        items=tuple(items),
        totals=totals_from_row(row, items, record=record),
        created_at=parse_utc_datetime(row.get("created_at_utc")),
    )


def list_proformas() -> List[Proforma]:
    rows = execute(
        table(_PROFORMA_TABLE).select("*").order("id", desc=True),
        action="fetch proforma invoices",
    )
    return [_row_to_proforma(row) for row in rows]


def insert_proforma(proforma: Proforma, *, now: Optional[datetime] = None) -> Proforma:
    payload: dict[str, Any] = {
        "proforma_no": blank_to_none(proforma.proforma_no),
        "customer_name": proforma.customer.name.strip(),
        "customer_phone": blank_to_none(proforma.customer.phone),
        "customer_gst": blank_to_none(proforma.customer.gst),
        "customer_address": blank_to_none(proforma.customer.address),
        "customer_state": blank_to_none(proforma.customer.state),
        "items": items_to_wire(list(proforma.items)),
        "created_at_utc": to_iso_utc(
            proforma.created_at or now or datetime.now(timezone.utc), name="created_at"
        ),
    }
    payload.update(totals_to_columns(proforma.totals))

    rows = execute(table(_PROFORMA_TABLE).insert(payload), action="create proforma invoice")
    if not rows:
        raise GatewayError("Failed to create proforma invoice: no row returned")
    return _row_to_proforma(rows[0])


def delete_proforma(proforma_id: int) -> None:
    rows = execute(
        table(_PROFORMA_TABLE).delete().eq("id", proforma_id),
        action=f"delete proforma invoice {proforma_id}",
    )
    first_or_raise(rows, "Proforma", proforma_id)


__all__ = ["delete_proforma", "insert_proforma", "list_proformas"]
