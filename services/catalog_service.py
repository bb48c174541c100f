"""
Catalog service: product maintenance and manual stock corrections.

Every committed change publishes ``inventory:updated`` with an action of
``add``, ``update`` or ``delete``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional

import config
from domain.errors import ValidationError
from domain.inventory import Product, plan_manual_adjustment
from domain.values import ZERO, to_decimal, to_optional_decimal
from repositories import inventory_repository
from services import live_updates as events
from services import stock_service
from services.live_updates import LiveUpdateRelay, get_relay

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("description", "hsn", "size", "colour", "unit")


def product_from_fields(fields: Mapping[str, Any]) -> Product:
    """
    Build an unsaved Product from loosely typed input (form or seed data).

    Missing numbers default to 0; present ones must parse.
    """

    def number(name: str) -> Decimal:
        value = to_optional_decimal(fields.get(name), field=name)
        return ZERO if value is None else value

    return Product(
        product_id=None,
        name=str(fields.get("name") or "").strip(),
        quantity=number("quantity"),
        price=number("price"),
        gst_rate=number("gst_rate"),
        min_stock=number("min_stock"),
        **{name: fields.get(name) or None for name in _TEXT_FIELDS},
    )


def list_products() -> List[Product]:
    return inventory_repository.list_products()


def low_stock_products(threshold: Optional[Decimal] = None) -> List[Product]:
    """Products with 0 < quantity < threshold (LOW_STOCK_THRESHOLD by default)."""

    limit = config.LOW_STOCK_THRESHOLD if threshold is None else threshold
    return [p for p in inventory_repository.list_products() if p.is_low_stock(limit)]


def out_of_stock_products() -> List[Product]:
    return [p for p in inventory_repository.list_products() if p.is_out_of_stock()]


def add_product(
    fields: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Product:
    saved = inventory_repository.create_product(product_from_fields(fields), now=now)
    logger.info(
        f"Product created: {saved.product_id}",
        extra={"product_id": saved.product_id, "product_name": saved.name, "quantity": str(saved.quantity)},
    )
    (relay or get_relay()).publish(events.INVENTORY_UPDATED, action="add", item=saved)
    return saved


def update_product(
    product_id: int,
    changes: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Product:
    """Change only the given fields; the rest keep their stored values."""

    saved = inventory_repository.update_product(product_id, changes, now=now)
    logger.info(
        f"Product updated: {product_id}",
        extra={"product_id": product_id, "fields": sorted(changes)},
    )
    (relay or get_relay()).publish(events.INVENTORY_UPDATED, action="update", item=saved)
    return saved


def delete_product(product_id: int, *, relay: Optional[LiveUpdateRelay] = None) -> None:
    inventory_repository.delete_product(product_id)
    logger.info(f"Product deleted: {product_id}", extra={"product_id": product_id})
    (relay or get_relay()).publish(events.INVENTORY_UPDATED, action="delete", id=product_id)


def _adjust_stock(
    product_id: int,
    delta: Decimal,
    *,
    now: Optional[datetime],
    relay: Optional[LiveUpdateRelay],
) -> Product:
    now = now or datetime.now(timezone.utc)
    product = inventory_repository.get_product(product_id)
    adjustment = plan_manual_adjustment(product, delta)
    stock_service.apply_adjustments([adjustment], now=now)

    updated = inventory_repository.get_product(product_id)
    logger.info(
        f"Stock adjusted for product {product_id}",
        extra={
            "product_id": product_id,
            "before": str(adjustment.before),
            "after": str(adjustment.after),
        },
    )
    (relay or get_relay()).publish(events.INVENTORY_UPDATED, action="update", item=updated)
    return updated


def _positive_quantity(quantity: Any) -> Decimal:
    value = to_decimal(quantity, field="quantity")
    if value <= ZERO:
        raise ValidationError("quantity must be greater than 0", field="quantity")
    return value


def add_stock(
    product_id: int,
    quantity: Any,
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Product:
    return _adjust_stock(product_id, _positive_quantity(quantity), now=now, relay=relay)


def remove_stock(
    product_id: int,
    quantity: Any,
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Product:
    """
    Raises:
        InsufficientStockError: quantity exceeds what is on hand.
    """

    return _adjust_stock(product_id, -_positive_quantity(quantity), now=now, relay=relay)


__all__ = [
    "add_product",
    "add_stock",
    "delete_product",
    "list_products",
    "low_stock_products",
    "out_of_stock_products",
    "product_from_fields",
    "remove_stock",
    "update_product",
]
