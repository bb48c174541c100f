"""
Party service: customers, suppliers and company/banking settings.

Each committed change publishes the matching ``customer:*``, ``supplier:*``
or ``settings:updated`` event.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from domain.invoice import PartySnapshot
from domain.party import Customer, Supplier
from repositories import party_repository, settings_repository
from services import live_updates as events
from services.live_updates import LiveUpdateRelay, get_relay

logger = logging.getLogger(__name__)


def _known(details: Mapping[str, Any]) -> Dict[str, Any]:
    """Fields a document left blank do not erase what the directory already has."""

    return {key: value for key, value in details.items() if value is not None}


def add_customer(customer: Customer, *, relay: Optional[LiveUpdateRelay] = None) -> Customer:
    saved = party_repository.create_customer(customer)
    logger.info(f"Customer created: {saved.customer_id}", extra={"customer_id": saved.customer_id})
    (relay or get_relay()).publish(events.CUSTOMER_CREATED, customer=saved)
    return saved


def update_customer(
    customer_id: int, changes: Mapping[str, Any], *, relay: Optional[LiveUpdateRelay] = None
) -> Customer:
    saved = party_repository.update_customer(customer_id, changes)
    logger.info(f"Customer updated: {customer_id}", extra={"customer_id": customer_id, "fields": sorted(changes)})
    (relay or get_relay()).publish(events.CUSTOMER_UPDATED, customer=saved)
    return saved


def delete_customer(customer_id: int, *, relay: Optional[LiveUpdateRelay] = None) -> None:
    party_repository.delete_customer(customer_id)
    logger.info(f"Customer deleted: {customer_id}", extra={"customer_id": customer_id})
    (relay or get_relay()).publish(events.CUSTOMER_DELETED, id=customer_id)


def record_customer_for_bill(
    snapshot: PartySnapshot,
    *,
    billed_at: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Customer:
    """
    Upsert the billed customer and stamp ``last_bill_date``.

    An existing customer (same phone or same name) gets the snapshot's
    details; otherwise a new customer is created.
    """

    billed_at = billed_at or datetime.now(timezone.utc)
    relay = relay or get_relay()
    details = {
        "name": snapshot.name,
        "phone": snapshot.phone,
        "gst": snapshot.gst,
        "address": snapshot.address,
        "state": snapshot.state,
    }

    existing = party_repository.find_customer(snapshot.name, snapshot.phone)
    if existing is not None and existing.customer_id is not None:
        saved = party_repository.update_customer(existing.customer_id, _known(details), last_bill_date=billed_at)
        relay.publish(events.CUSTOMER_UPDATED, customer=saved)
        return saved

    saved = party_repository.create_customer(
        Customer(customer_id=None, last_bill_date=billed_at, **details), now=billed_at
    )
    relay.publish(events.CUSTOMER_CREATED, customer=saved)
    return saved


def add_supplier(supplier: Supplier, *, relay: Optional[LiveUpdateRelay] = None) -> Supplier:
    saved = party_repository.create_supplier(supplier)
    logger.info(f"Supplier created: {saved.supplier_id}", extra={"supplier_id": saved.supplier_id})
    (relay or get_relay()).publish(events.SUPPLIER_CREATED, supplier=saved)
    return saved


def update_supplier(
    supplier_id: int, changes: Mapping[str, Any], *, relay: Optional[LiveUpdateRelay] = None
) -> Supplier:
    saved = party_repository.update_supplier(supplier_id, changes)
    logger.info(f"Supplier updated: {supplier_id}", extra={"supplier_id": supplier_id, "fields": sorted(changes)})
    (relay or get_relay()).publish(events.SUPPLIER_UPDATED, supplier=saved)
    return saved


def delete_supplier(supplier_id: int, *, relay: Optional[LiveUpdateRelay] = None) -> None:
    party_repository.delete_supplier(supplier_id)
    logger.info(f"Supplier deleted: {supplier_id}", extra={"supplier_id": supplier_id})
    (relay or get_relay()).publish(events.SUPPLIER_DELETED, id=supplier_id)


def record_supplier_for_purchase(
    snapshot: PartySnapshot, *, relay: Optional[LiveUpdateRelay] = None
) -> Supplier:
    """Upsert the supplier named on a purchase."""

    relay = relay or get_relay()
    details = {"name": snapshot.name, "phone": snapshot.phone, "gst": snapshot.gst}

    existing = party_repository.find_supplier(snapshot.name, snapshot.phone)
    if existing is not None and existing.supplier_id is not None:
        saved = party_repository.update_supplier(existing.supplier_id, _known(details))
        relay.publish(events.SUPPLIER_UPDATED, supplier=saved)
        return saved

    saved = party_repository.create_supplier(Supplier(supplier_id=None, **details))
    relay.publish(events.SUPPLIER_CREATED, supplier=saved)
    return saved


def get_settings(settings_type: str) -> Dict[str, Any]:
    return settings_repository.get_settings(settings_type)


def save_settings(
    settings_type: str, data: Mapping[str, Any], *, relay: Optional[LiveUpdateRelay] = None
) -> Dict[str, Any]:
    saved = settings_repository.save_settings(settings_type, data)
    logger.info(f"Settings saved: {settings_type}", extra={"settings_type": settings_type})
    (relay or get_relay()).publish(events.SETTINGS_UPDATED, type=settings_type, data=saved)
    return saved


__all__ = [
    "add_customer",
    "add_supplier",
    "delete_customer",
    "delete_supplier",
    "get_settings",
    "record_customer_for_bill",
    "record_supplier_for_purchase",
    "save_settings",
    "update_customer",
    "update_supplier",
]
