"""
Domain: Error taxonomy.

Rules:
- ValidationError and InvalidAmountError are raised before any gateway call.
- InsufficientStockError blocks a sale as a whole; no partial adjustment.
- GatewayError (and subclasses) surface persistence failures; the operation is
  treated as not committed.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional


class BillingError(Exception):
    """Base class for every error raised by the billing platform."""


class ValidationError(BillingError):
    """Raised when input is malformed or incomplete."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidAmountError(BillingError):
    """Raised when a payment amount is outside 0 < amount <= amount_pending."""

    def __init__(self, amount: Decimal, amount_pending: Optional[Decimal] = None):
        self.amount = amount
        self.amount_pending = amount_pending
        if amount_pending is None:
            message = f"Payment amount must be greater than 0, got {amount}"
        else:
            message = f"Payment amount must be greater than 0 and at most {amount_pending}, got {amount}"
        super().__init__(message)


class InsufficientStockError(BillingError):
    """Raised when a sale requests more than the on-hand quantity of a product."""

    def __init__(
        self,
        product_id: int,
        requested: Decimal,
        available: Decimal,
        product_name: Optional[str] = None,
    ):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.product_name = product_name
        label = product_name or f"product #{product_id}"
        super().__init__(
            f"Not enough stock for {label}. Available: {available}, Required: {requested}"
        )


class GatewayError(BillingError):
    """Raised when the persistence gateway fails; nothing is assumed committed."""


class NotFoundError(GatewayError):
    """Raised when a record addressed by id does not exist."""

    def __init__(self, entity: str, record_id: int):
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found: {record_id}")


class StockConflictError(GatewayError):
    """Raised when a product's quantity changed between read and conditional write."""

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(
            f"Stock for product #{product_id} was modified concurrently; reload and retry"
        )


__all__ = [
    "BillingError",
    "ValidationError",
    "InvalidAmountError",
    "InsufficientStockError",
    "GatewayError",
    "NotFoundError",
    "StockConflictError",
]
