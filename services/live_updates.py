"""
Live update relay.

Every committed mutation publishes a named event so that connected views can
patch their local copies instead of refetching. Delivery is in-process,
synchronous, in subscription order and best-effort: a failing subscriber is
logged and skipped, and never undoes the mutation that published the event.

Event names:
    inventory:updated   {"action": "add" | "update" | "delete", "item" | "id"}
    inventory:refresh   {"items": [...]}   (full product list after stock moves)
    bill:created / bill:updated / bill:deleted
    purchase:created / purchase:updated / purchase:deleted
    customer:created / customer:updated / customer:deleted
    supplier:created / supplier:updated / supplier:deleted
    proforma:created / proforma:deleted
    settings:updated    {"type": "company" | "banking", "data": {...}}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

INVENTORY_UPDATED = "inventory:updated"
INVENTORY_REFRESH = "inventory:refresh"
BILL_CREATED = "bill:created"
BILL_UPDATED = "bill:updated"
BILL_DELETED = "bill:deleted"
PURCHASE_CREATED = "purchase:created"
PURCHASE_UPDATED = "purchase:updated"
PURCHASE_DELETED = "purchase:deleted"
CUSTOMER_CREATED = "customer:created"
CUSTOMER_UPDATED = "customer:updated"
CUSTOMER_DELETED = "customer:deleted"
SUPPLIER_CREATED = "supplier:created"
SUPPLIER_UPDATED = "supplier:updated"
SUPPLIER_DELETED = "supplier:deleted"
PROFORMA_CREATED = "proforma:created"
PROFORMA_DELETED = "proforma:deleted"
SETTINGS_UPDATED = "settings:updated"

EVENT_NAMES: FrozenSet[str] = frozenset(
    {
        INVENTORY_UPDATED,
        INVENTORY_REFRESH,
        BILL_CREATED,
        BILL_UPDATED,
        BILL_DELETED,
        PURCHASE_CREATED,
        PURCHASE_UPDATED,
        PURCHASE_DELETED,
        CUSTOMER_CREATED,
        CUSTOMER_UPDATED,
        CUSTOMER_DELETED,
        SUPPLIER_CREATED,
        SUPPLIER_UPDATED,
        SUPPLIER_DELETED,
        PROFORMA_CREATED,
        PROFORMA_DELETED,
        SETTINGS_UPDATED,
    }
)


@dataclass(frozen=True, slots=True)
class LiveEvent:
    """A mutation notice. ``payload`` carries the affected domain object(s)."""

    name: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.name not in EVENT_NAMES:
            raise ValueError(f"Unknown event name: {self.name!r}")


Handler = Callable[[LiveEvent], None]


@dataclass(frozen=True, slots=True)
class Subscription:
    handler: Handler
    events: Optional[FrozenSet[str]] = None

    def wants(self, name: str) -> bool:
        return self.events is None or name in self.events


class LiveUpdateRelay:
    """Fan a published event out to every interested subscriber."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []
        self._lock = RLock()

    def subscribe(self, handler: Handler, events: Optional[Iterable[str]] = None) -> Subscription:
        """
        Register ``handler`` for ``events`` (all events when None).

        Raises:
            ValueError: an event name is not one the relay knows.
        """

        wanted = None
        if events is not None:
            wanted = frozenset(events)
            unknown = wanted - EVENT_NAMES
            if unknown:
                raise ValueError(f"Unknown event names: {', '.join(sorted(unknown))}")

        subscription = Subscription(handler=handler, events=wanted)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, name: str, **payload: Any) -> LiveEvent:
        event = LiveEvent(name=name, payload=payload)
        with self._lock:
            targets = [s for s in self._subscriptions if s.wants(name)]

        for subscription in targets:
            try:
                subscription.handler(event)
            except Exception as e:
                logger.warning(
                    f"Live update subscriber failed for {name}",
                    extra={"event": name, "handler": repr(subscription.handler), "error": str(e)},
                )
        return event

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)


_default_relay = LiveUpdateRelay()


def get_relay() -> LiveUpdateRelay:
    """The process-wide relay used by services unless one is passed explicitly."""

    return _default_relay


__all__ = [
    "EVENT_NAMES",
    "LiveEvent",
    "LiveUpdateRelay",
    "Subscription",
    "get_relay",
    "INVENTORY_UPDATED",
    "INVENTORY_REFRESH",
    "BILL_CREATED",
    "BILL_UPDATED",
    "BILL_DELETED",
    "PURCHASE_CREATED",
    "PURCHASE_UPDATED",
    "PURCHASE_DELETED",
    "CUSTOMER_CREATED",
    "CUSTOMER_UPDATED",
    "CUSTOMER_DELETED",
    "SUPPLIER_CREATED",
    "SUPPLIER_UPDATED",
    "SUPPLIER_DELETED",
    "PROFORMA_CREATED",
    "PROFORMA_DELETED",
    "SETTINGS_UPDATED",
]
