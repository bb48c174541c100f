"""
Domain: Customers and suppliers.

Customers are matched by name when a bill is issued (case-insensitive, trimmed)
and their last_bill_date is stamped. Suppliers are matched the same way when
a purchase is recorded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import ValidationError
from .invoice import PartySnapshot
from .values import require_utc_timestamp


def normalize_name(name: str) -> str:
    return " ".join(name.split()).casefold()


@dataclass(frozen=True, slots=True)
class Customer:
    customer_id: Optional[int]
    name: str
    phone: Optional[str] = None
    gst: Optional[str] = None
    address: Optional[str] = None
    state: Optional[str] = None  # "same" / "other" relative to the seller
    created_at: Optional[datetime] = None
    last_bill_date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("customer name is required", field="name")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.last_bill_date is not None:
            require_utc_timestamp("last_bill_date", self.last_bill_date)

    def matches(self, name: str) -> bool:
        return normalize_name(self.name) == normalize_name(name)

    def snapshot(self) -> PartySnapshot:
        return PartySnapshot(
            name=self.name,
            phone=self.phone,
            gst=self.gst,
            address=self.address,
            state=self.state,
        )


@dataclass(frozen=True, slots=True)
class Supplier:
    supplier_id: Optional[int]
    name: str
    phone: Optional[str] = None
    gst: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("supplier name is required", field="name")
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)

    def matches(self, name: str) -> bool:
        return normalize_name(self.name) == normalize_name(name)

    def snapshot(self) -> PartySnapshot:
        return PartySnapshot(name=self.name, phone=self.phone, gst=self.gst)


__all__ = ["Customer", "Supplier", "normalize_name"]
