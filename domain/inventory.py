"""
Domain: Inventory products and stock adjustment planning.

Rules implemented here:
- A sale subtracts each line's quantity from the product's on-hand stock.
- A purchase adds each line's quantity.
- Lines for the same product are aggregated before checking stock.
- A sale fails as a whole with InsufficientStockError if any product would go
  below zero. Planning never mutates anything; it returns the complete list
  of adjustments so the caller can apply them as one unit.

This module contains only pure domain entities: no I/O, no database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import InsufficientStockError, ValidationError
from .line_item import LineItem
from .values import ZERO, require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Product:
    """A stocked product. ``gst_rate`` is the default tax percentage for new lines."""

    product_id: Optional[int]
    name: str
    quantity: Decimal = ZERO
    price: Decimal = ZERO
    gst_rate: Decimal = ZERO
    min_stock: Decimal = ZERO
    description: Optional[str] = None
    hsn: Optional[str] = None
    size: Optional[str] = None
    colour: Optional[str] = None
    unit: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("product name is required", field="name")
        if self.quantity < ZERO:
            raise ValidationError("quantity must be >= 0", field="quantity")
        if self.price < ZERO:
            raise ValidationError("price must be >= 0", field="price")
        if self.gst_rate < ZERO or self.gst_rate > Decimal("100"):
            raise ValidationError("gst_rate must be between 0 and 100", field="gst_rate")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * self.price

    def is_out_of_stock(self) -> bool:
        return self.quantity == ZERO

    def is_low_stock(self, threshold: Decimal) -> bool:
        return ZERO < self.quantity < threshold

    def line(self, quantity: Decimal, unit_price: Optional[Decimal] = None) -> LineItem:
        """A line item for this product; the unit price defaults to the list price."""

        if self.product_id is None:
            raise ValidationError("product has not been saved yet", field="product_ref")
        return LineItem(
            product_ref=self.product_id,
            quantity=quantity,
            unit_price=self.price if unit_price is None else unit_price,
            tax_rate=self.gst_rate,
            name=self.name,
            size=self.size,
            unit=self.unit,
        )


@dataclass(frozen=True, slots=True)
class StockAdjustment:
    """Quantity of one product before and after a transaction."""

    product_id: int
    before: Decimal
    after: Decimal

    @property
    def delta(self) -> Decimal:
        return self.after - self.before

    def reversed(self) -> "StockAdjustment":
        return StockAdjustment(product_id=self.product_id, before=self.after, after=self.before)


def _aggregate(items: Iterable[LineItem]) -> Dict[int, Decimal]:
    totals: Dict[int, Decimal] = {}
    for item in items:
        totals[item.product_ref] = totals.get(item.product_ref, ZERO) + item.quantity
    return totals


def _lookup(products: Mapping[int, Product], product_id: int) -> Product:
    product = products.get(product_id)
    if product is None:
        raise ValidationError(f"Unknown product: {product_id}", field="product_ref")
    return product


def plan_sale(products: Mapping[int, Product], items: Iterable[LineItem]) -> List[StockAdjustment]:
    """
    Plan stock deductions for a sale.

    Raises:
        ValidationError: a line references an unknown product.
        InsufficientStockError: the first product whose aggregated quantity
            exceeds stock. No adjustment list is returned in that case.
    """

    adjustments: List[StockAdjustment] = []
    for product_id, quantity in _aggregate(items).items():
        product = _lookup(products, product_id)
        if quantity > product.quantity:
            raise InsufficientStockError(
                product_id=product_id,
                requested=quantity,
                available=product.quantity,
                product_name=product.name,
            )
        adjustments.append(
            StockAdjustment(product_id=product_id, before=product.quantity, after=product.quantity - quantity)
        )
    return adjustments


def plan_purchase(products: Mapping[int, Product], items: Iterable[LineItem]) -> List[StockAdjustment]:
    """Plan stock additions for goods received from a supplier."""

    adjustments: List[StockAdjustment] = []
    for product_id, quantity in _aggregate(items).items():
        product = _lookup(products, product_id)
        adjustments.append(
            StockAdjustment(product_id=product_id, before=product.quantity, after=product.quantity + quantity)
        )
    return adjustments


def plan_manual_adjustment(product: Product, delta: Decimal) -> StockAdjustment:
    """
    Plan a manual stock correction (positive adds, negative removes).

    Raises:
        ValidationError: delta is zero or the product is unsaved.
        InsufficientStockError: the removal exceeds on-hand stock.
    """

    if product.product_id is None:
        raise ValidationError("product has not been saved yet", field="product_ref")
    if delta == ZERO:
        raise ValidationError("stock adjustment must be non-zero", field="quantity")
    if product.quantity + delta < ZERO:
        raise InsufficientStockError(
            product_id=product.product_id,
            requested=-delta,
            available=product.quantity,
            product_name=product.name,
        )
    return StockAdjustment(
        product_id=product.product_id, before=product.quantity, after=product.quantity + delta
    )


__all__ = [
    "Product",
    "StockAdjustment",
    "plan_manual_adjustment",
    "plan_purchase",
    "plan_sale",
]
