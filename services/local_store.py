"""
Client-side mirror of the persisted collections.

A LocalStore is an explicit object (not a global) holding the lists a view
renders. ``load`` fills it from the gateway; after that it is kept current by
applying relay events, matching records by id:

- created  -> inserted at the front (newest first) unless already present
- updated  -> replaced in place, or inserted when missing
- deleted  -> removed
- inventory:refresh -> product list replaced wholesale

A store that misses events is stale until ``load`` is called again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

from domain.invoice import Bill, Proforma, Purchase
from domain.inventory import Product
from domain.party import Customer, Supplier
from repositories import (
    bill_repository,
    inventory_repository,
    party_repository,
    proforma_repository,
    purchase_repository,
    settings_repository,
)
from services import live_updates as events
from services.live_updates import LiveEvent, LiveUpdateRelay, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _upsert(records: List[T], record: T, key: Callable[[T], Any], *, prepend: bool) -> List[T]:
    ident = key(record)
    for index, existing in enumerate(records):
        if key(existing) == ident:
            return records[:index] + [record] + records[index + 1 :]
    return [record] + records if prepend else records + [record]


def _remove(records: List[T], record_id: Any, key: Callable[[T], Any]) -> List[T]:
    return [r for r in records if key(r) != record_id]


@dataclass
class LocalStore:
    products: List[Product] = field(default_factory=list)
    bills: List[Bill] = field(default_factory=list)
    purchases: List[Purchase] = field(default_factory=list)
    proformas: List[Proforma] = field(default_factory=list)
    customers: List[Customer] = field(default_factory=list)
    suppliers: List[Supplier] = field(default_factory=list)
    settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    _subscription: Optional[Subscription] = field(default=None, repr=False)

    def load(self) -> "LocalStore":
        """Replace every collection with the gateway's current state."""

        self.products = inventory_repository.list_products()
        self.bills = bill_repository.list_bills()
        self.purchases = purchase_repository.list_purchases()
        self.proformas = proforma_repository.list_proformas()
        self.customers = party_repository.list_customers()
        self.suppliers = party_repository.list_suppliers()
        self.settings = {
            kind: settings_repository.get_settings(kind) for kind in settings_repository.SETTINGS_TYPES
        }
        return self

    def attach(self, relay: LiveUpdateRelay) -> Subscription:
        if self._subscription is not None:
            raise RuntimeError("LocalStore is already attached to a relay")
        self._subscription = relay.subscribe(self.apply)
        return self._subscription

    def detach(self, relay: LiveUpdateRelay) -> None:
        if self._subscription is not None:
            relay.unsubscribe(self._subscription)
            self._subscription = None

    def apply(self, event: LiveEvent) -> None:
        entity, _, verb = event.name.partition(":")
        payload = event.payload

        if event.name == events.INVENTORY_REFRESH:
            self.products = list(payload["items"])
        elif event.name == events.INVENTORY_UPDATED:
            self._apply_inventory(payload)
        elif event.name == events.SETTINGS_UPDATED:
            self.settings[payload["type"]] = dict(payload["data"])
        elif entity == "bill":
            self.bills = self._apply_record(self.bills, verb, payload, "bill", lambda b: b.bill_id)
        elif entity == "purchase":
            self.purchases = self._apply_record(
                self.purchases, verb, payload, "purchase", lambda p: p.purchase_id
            )
        elif entity == "proforma":
            self.proformas = self._apply_record(
                self.proformas, verb, payload, "proforma", lambda p: p.proforma_id
            )
        elif entity == "customer":
            self.customers = self._apply_record(
                self.customers, verb, payload, "customer", lambda c: c.customer_id
            )
        elif entity == "supplier":
            self.suppliers = self._apply_record(
                self.suppliers, verb, payload, "supplier", lambda s: s.supplier_id
            )
        else:
            logger.debug(f"LocalStore ignoring event {event.name}")

    def _apply_inventory(self, payload: Any) -> None:
        action = payload.get("action")
        if action == "delete":
            self.products = _remove(self.products, payload["id"], lambda p: p.product_id)
        elif action in ("add", "update"):
            self.products = _upsert(
                self.products, payload["item"], lambda p: p.product_id, prepend=False
            )
        else:
            logger.warning(f"Unknown inventory action: {action!r}")

    @staticmethod
    def _apply_record(records: List[T], verb: str, payload: Any, key_name: str, key: Callable[[T], Any]) -> List[T]:
        if verb == "deleted":
            return _remove(records, payload["id"], key)
        return _upsert(records, payload[key_name], key, prepend=verb == "created")

    def product(self, product_id: int) -> Optional[Product]:
        return next((p for p in self.products if p.product_id == product_id), None)


__all__ = ["LocalStore"]
