"""
Customer and supplier repository (persistence).

Name lookups are done in Python over the full list: PostgREST's ``ilike`` does
not collapse internal whitespace, and the tables are small.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from domain.errors import GatewayError, ValidationError
from domain.party import Customer, Supplier
from repositories.gateway import (
    blank_to_none,
    execute,
    first_or_raise,
    parse_utc_datetime,
    table,
    to_iso_utc,
)

_CUSTOMERS_TABLE: str = "customers"
_SUPPLIERS_TABLE: str = "suppliers"

_CUSTOMER_FIELDS = ("name", "phone", "gst", "address", "state")
_SUPPLIER_FIELDS = ("name", "phone", "gst")


def _check_fields(changes: Mapping[str, Any], allowed: tuple[str, ...], entity: str) -> None:
    unknown = set(changes) - set(allowed)
    if unknown:
        raise ValidationError(f"Unknown {entity} fields: {', '.join(sorted(unknown))}")


# ----------------------------------------------------------------------------
# Customers
# ----------------------------------------------------------------------------

def _row_to_customer(row: Mapping[str, Any]) -> Customer:
    try:
        return Customer(
            customer_id=int(row["id"]),
            name=str(row["name"]),
            phone=row.get("phone"),
            gst=row.get("gst"),
            address=row.get("address"),
            state=row.get("state"),
            created_at=parse_utc_datetime(row.get("created_at_utc")),
            last_bill_date=parse_utc_datetime(row.get("last_bill_date")),
        )
    except (KeyError, ValueError, TypeError, ValidationError) as e:
        raise GatewayError(f"Malformed customer row {row.get('id')!r}: {e}") from e


def list_customers() -> List[Customer]:
    rows = execute(
        table(_CUSTOMERS_TABLE).select("*").order("id", desc=True),
        action="fetch customers",
    )
    return [_row_to_customer(row) for row in rows]


def get_customer(customer_id: int) -> Customer:
    rows = execute(
        table(_CUSTOMERS_TABLE).select("*").eq("id", customer_id).limit(1),
        action=f"fetch customer {customer_id}",
    )
    return _row_to_customer(first_or_raise(rows, "Customer", customer_id))


def find_customer(name: str, phone: Optional[str] = None) -> Optional[Customer]:
    """First customer with the same phone (when given) or the same normalised name."""

    phone = blank_to_none(phone)
    for customer in list_customers():
        if (phone and customer.phone == phone) or customer.matches(name):
            return customer
    return None


def create_customer(customer: Customer, *, now: Optional[datetime] = None) -> Customer:
    payload: dict[str, Any] = {
        "name": customer.name.strip(),
        "phone": blank_to_none(customer.phone),
        "gst": blank_to_none(customer.gst),
        "address": blank_to_none(customer.address),
        "state": blank_to_none(customer.state),
        "created_at_utc": to_iso_utc(now or datetime.now(timezone.utc), name="created_at"),
        "last_bill_date": to_iso_utc(customer.last_bill_date, name="last_bill_date"),
    }
    rows = execute(table(_CUSTOMERS_TABLE).insert(payload), action="create customer")
    if not rows:
        raise GatewayError("Failed to create customer: no row returned")
    return _row_to_customer(rows[0])


def update_customer(
    customer_id: int,
    changes: Mapping[str, Any],
    *,
    last_bill_date: Optional[datetime] = None,
) -> Customer:
    """Apply a partial update; ``last_bill_date`` is stamped by billing only."""

    _check_fields(changes, _CUSTOMER_FIELDS, "customer")
    payload: dict[str, Any] = {}
    for name in _CUSTOMER_FIELDS:
        if name in changes:
            payload[name] = blank_to_none(changes[name])
    if "name" in payload and payload["name"] is None:
        raise ValidationError("customer name is required", field="name")
    if last_bill_date is not None:
        payload["last_bill_date"] = to_iso_utc(last_bill_date, name="last_bill_date")
    if not payload:
        return get_customer(customer_id)

    rows = execute(
        table(_CUSTOMERS_TABLE).update(payload).eq("id", customer_id),
        action=f"update customer {customer_id}",
    )
    return _row_to_customer(first_or_raise(rows, "Customer", customer_id))


def delete_customer(customer_id: int) -> None:
    rows = execute(
        table(_CUSTOMERS_TABLE).delete().eq("id", customer_id),
        action=f"delete customer {customer_id}",
    )
    first_or_raise(rows, "Customer", customer_id)


# ----------------------------------------------------------------------------
# Suppliers
# ----------------------------------------------------------------------------

def _row_to_supplier(row: Mapping[str, Any]) -> Supplier:
    try:
        return Supplier(
            supplier_id=int(row["id"]),
            name=str(row["name"]),
            phone=row.get("phone"),
            gst=row.get("gst"),
            created_at=parse_utc_datetime(row.get("created_at_utc")),
        )
    except (KeyError, ValueError, TypeError, ValidationError) as e:
        raise GatewayError(f"Malformed supplier row {row.get('id')!r}: {e}") from e


def list_suppliers() -> List[Supplier]:
    rows = execute(
        table(_SUPPLIERS_TABLE).select("*").order("id", desc=True),
        action="fetch suppliers",
    )
    return [_row_to_supplier(row) for row in rows]


def get_supplier(supplier_id: int) -> Supplier:
    rows = execute(
        table(_SUPPLIERS_TABLE).select("*").eq("id", supplier_id).limit(1),
        action=f"fetch supplier {supplier_id}",
    )
    return _row_to_supplier(first_or_raise(rows, "Supplier", supplier_id))


def find_supplier(name: str, phone: Optional[str] = None) -> Optional[Supplier]:
    phone = blank_to_none(phone)
    for supplier in list_suppliers():
        if (phone and supplier.phone == phone) or supplier.matches(name):
            return supplier
    return None


def create_supplier(supplier: Supplier, *, now: Optional[datetime] = None) -> Supplier:
    payload: dict[str, Any] = {
        "name": supplier.name.strip(),
        "phone": blank_to_none(supplier.phone),
        "gst": blank_to_none(supplier.gst),
        "created_at_utc": to_iso_utc(now or datetime.now(timezone.utc), name="created_at"),
    }
    rows = execute(table(_SUPPLIERS_TABLE).insert(payload), action="create supplier")
    if not rows:
        raise GatewayError("Failed to create supplier: no row returned")
    return _row_to_supplier(rows[0])


def update_supplier(supplier_id: int, changes: Mapping[str, Any]) -> Supplier:
    _check_fields(changes, _SUPPLIER_FIELDS, "supplier")
    payload = {name: blank_to_none(changes[name]) for name in _SUPPLIER_FIELDS if name in changes}
    if "name" in payload and payload["name"] is None:
        raise ValidationError("supplier name is required", field="name")
    if not payload:
        return get_supplier(supplier_id)

    rows = execute(
        table(_SUPPLIERS_TABLE).update(payload).eq("id", supplier_id),
        action=f"update supplier {supplier_id}",
    )
    return _row_to_supplier(first_or_raise(rows, "Supplier", supplier_id))


def delete_supplier(supplier_id: int) -> None:
    rows = execute(
        table(_SUPPLIERS_TABLE).delete().eq("id", supplier_id),
        action=f"delete supplier {supplier_id}",
    )
    first_or_raise(rows, "Supplier", supplier_id)


__all__ = [
    "create_customer",
    "create_supplier",
    "delete_customer",
    "delete_supplier",
    "find_customer",
    "find_supplier",
    "get_customer",
    "get_supplier",
    "list_customers",
    "list_suppliers",
    "update_customer",
    "update_supplier",
]
