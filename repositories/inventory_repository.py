"""
Inventory repository (persistence).

This module provides *only* persistence operations for the Product domain
entity. It contains no business rules about stock sufficiency; those live in
``domain.inventory``. The one persistence constraint it enforces is the
conditional quantity write used to apply stock adjustments safely.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from domain.errors import GatewayError, StockConflictError, ValidationError
from domain.inventory import Product, StockAdjustment
from domain.values import ZERO, decimal_to_wire, to_decimal
from repositories.gateway import (
    blank_to_none,
    execute,
    first_or_raise,
    parse_utc_datetime,
    table,
    to_iso_utc,
)

# Supabase table name for products.
# Keep this aligned with your database schema.
_INVENTORY_TABLE: str = "inventory"

# Columns a caller may change through update_product.
_EDITABLE_FIELDS = (
    "name",
    "description",
    "hsn",
    "size",
    "colour",
    "unit",
    "quantity",
    "min_stock",
    "price",
    "gst_rate",
)


def _row_to_product(row: Mapping[str, Any]) -> Product:
    """Convert a Supabase row into a Product, defaulting missing numbers to 0."""

    try:
        return Product(
            product_id=int(row["id"]),
            name=str(row["name"]),
            description=row.get("description"),
            hsn=row.get("hsn"),
            size=row.get("size"),
            colour=row.get("colour"),
            unit=row.get("unit"),
            quantity=to_decimal(row.get("quantity") or 0, field="quantity"),
            min_stock=to_decimal(row.get("min_stock") or 0, field="min_stock"),
            price=to_decimal(row.get("price") or 0, field="price"),
            gst_rate=to_decimal(row.get("gst") or 0, field="gst"),
            created_at=parse_utc_datetime(row.get("created_at_utc")),
            updated_at=parse_utc_datetime(row.get("updated_at_utc")),
        )
    except (KeyError, ValueError, TypeError, ValidationError) as e:
        raise GatewayError(f"Malformed inventory row {row.get('id')!r}: {e}") from e


def _product_to_payload(product: Product) -> dict[str, Any]:
    return {
        "name": product.name.strip(),
        "description": blank_to_none(product.description),
        "hsn": blank_to_none(product.hsn),
        "size": blank_to_none(product.size),
        "colour": blank_to_none(product.colour),
        "unit": blank_to_none(product.unit),
        "quantity": decimal_to_wire(product.quantity),
        "min_stock": decimal_to_wire(product.min_stock),
        "price": decimal_to_wire(product.price),
        "gst": decimal_to_wire(product.gst_rate),
    }


def list_products() -> List[Product]:
    """Fetch every product ordered by id (oldest first)."""

    rows = execute(
        table(_INVENTORY_TABLE).select("*").order("id"),
        action="fetch inventory",
    )
    return [_row_to_product(row) for row in rows]


def get_product(product_id: int) -> Product:
    rows = execute(
        table(_INVENTORY_TABLE).select("*").eq("id", product_id).limit(1),
        action=f"fetch product {product_id}",
    )
    return _row_to_product(first_or_raise(rows, "Product", product_id))


def get_products_by_ids(product_ids: List[int]) -> Dict[int, Product]:
    """Fetch the given products keyed by id. Missing ids are simply absent."""

    if not product_ids:
        return {}
    rows = execute(
        table(_INVENTORY_TABLE).select("*").in_("id", sorted(set(product_ids))),
        action="fetch products",
    )
    products = [_row_to_product(row) for row in rows]
    return {p.product_id: p for p in products if p.product_id is not None}


def create_product(product: Product, *, now: Optional[datetime] = None) -> Product:
    """Insert a new product and return it with its server-assigned id."""

    now = now or datetime.now(timezone.utc)
    payload = _product_to_payload(product)
    payload["created_at_utc"] = to_iso_utc(now, name="created_at")
    payload["updated_at_utc"] = to_iso_utc(now, name="updated_at")

    rows = execute(table(_INVENTORY_TABLE).insert(payload), action="create product")
    if not rows:
        raise GatewayError("Failed to create product: no row returned")
    return _row_to_product(rows[0])


def update_product(product_id: int, changes: Mapping[str, Any], *, now: Optional[datetime] = None) -> Product:
    """
    Merge ``changes`` into the stored product (only the provided fields change).

    Raises:
        ValidationError: an unknown field name was supplied.
        NotFoundError: no product with this id.
    """

    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")

    current = get_product(product_id)
    merged = Product(
        product_id=current.product_id,
        name=changes.get("name", current.name),
        description=changes.get("description", current.description),
        hsn=changes.get("hsn", current.hsn),
        size=changes.get("size", current.size),
        colour=changes.get("colour", current.colour),
        unit=changes.get("unit", current.unit),
        quantity=to_decimal(changes.get("quantity", current.quantity), field="quantity"),
        min_stock=to_decimal(changes.get("min_stock", current.min_stock), field="min_stock"),
        price=to_decimal(changes.get("price", current.price), field="price"),
        gst_rate=to_decimal(changes.get("gst_rate", current.gst_rate), field="gst_rate"),
        created_at=current.created_at,
    )

    payload = _product_to_payload(merged)
    payload["updated_at_utc"] = to_iso_utc(now or datetime.now(timezone.utc), name="updated_at")

    rows = execute(
        table(_INVENTORY_TABLE).update(payload).eq("id", product_id),
        action=f"update product {product_id}",
    )
    return _row_to_product(first_or_raise(rows, "Product", product_id))


def delete_product(product_id: int) -> None:
    rows = execute(
        table(_INVENTORY_TABLE).delete().eq("id", product_id),
        action=f"delete product {product_id}",
    )
    first_or_raise(rows, "Product", product_id)


def apply_adjustment(adjustment: StockAdjustment, *, now: Optional[datetime] = None) -> None:
    """
    Set a product's quantity from ``before`` to ``after``.

    Requirements:
    - Must only update if the stored quantity still equals ``before``.

    Raises:
        StockConflictError: the row is missing or its quantity changed meanwhile.
    """

    if adjustment.after < ZERO:
        raise ValueError("stock quantity cannot become negative")

    payload: dict[str, Any] = {
        "quantity": decimal_to_wire(adjustment.after),
        "updated_at_utc": to_iso_utc(now or datetime.now(timezone.utc), name="updated_at"),
    }
    rows = execute(
        table(_INVENTORY_TABLE)
        .update(payload)
        .eq("id", adjustment.product_id)
        .eq("quantity", decimal_to_wire(adjustment.before)),
        action=f"adjust stock for product {adjustment.product_id}",
    )
    if not rows:
        # Either no record exists, or another writer changed the quantity.
        raise StockConflictError(adjustment.product_id)


__all__ = [
    "apply_adjustment",
    "create_product",
    "delete_product",
    "get_product",
    "get_products_by_ids",
    "list_products",
    "update_product",
]
