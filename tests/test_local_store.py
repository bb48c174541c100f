"""
Tests for `services/local_store.py`.

Covers contract rules:
- The store patches its mirror by id: created prepends, updated replaces, deleted removes.
- inventory:refresh replaces the product list wholesale.
- An attached store follows service mutations without refetching.
- load() rebuilds every collection from the gateway.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from domain.inventory import Product
from domain.invoice import PartySnapshot
from domain.line_item import LineItem
from services import catalog_service, payment_service
from services.billing_service import CreateBillRequest, create_bill
from services.live_updates import INVENTORY_REFRESH, INVENTORY_UPDATED, LiveEvent, LiveUpdateRelay
from services.local_store import LocalStore

NOW = datetime(2025, 8, 1, 9, 0, tzinfo=timezone.utc)


def _product(product_id: int, quantity: str) -> Product:
    return Product(product_id=product_id, name=f"P{product_id}", quantity=Decimal(quantity))


def test_inventory_events_patch_by_id() -> None:
    store = LocalStore(products=[_product(1, "5"), _product(2, "8")])

    store.apply(LiveEvent(INVENTORY_UPDATED, {"action": "update", "item": _product(2, "3")}))
    store.apply(LiveEvent(INVENTORY_UPDATED, {"action": "add", "item": _product(3, "1")}))
    store.apply(LiveEvent(INVENTORY_UPDATED, {"action": "delete", "id": 1}))

    assert [(p.product_id, p.quantity) for p in store.products] == [(2, Decimal("3")), (3, Decimal("1"))]


def test_refresh_replaces_products() -> None:
    store = LocalStore(products=[_product(1, "5")])

    store.apply(LiveEvent(INVENTORY_REFRESH, {"items": [_product(9, "1")]}))

    assert [p.product_id for p in store.products] == [9]


def test_attached_store_follows_mutations(fake_db) -> None:
    relay = LiveUpdateRelay()
    store = LocalStore()
    store.attach(relay)
    tile = catalog_service.add_product({"name": "Tile", "quantity": "50", "price": "100", "gst_rate": "18"}, relay=relay)

    result = create_bill(
        CreateBillRequest(
            customer=PartySnapshot(name="Asha Traders"),
            items=[tile.line(Decimal("10"))],
            jurisdiction="same",
        ),
        now=NOW,
        relay=relay,
    )
    payment_service.record_payment("bill", result.bill.bill_id, "500", now=NOW, relay=relay)

    assert store.product(tile.product_id).quantity == Decimal("40")
    assert [b.bill_id for b in store.bills] == [result.bill.bill_id]
    assert store.bills[0].ledger.amount_pending == Decimal("680")
    assert [c.name for c in store.customers] == ["Asha Traders"]

    store.detach(relay)
    catalog_service.delete_product(tile.product_id, relay=relay)
    assert store.product(tile.product_id) is not None


def test_new_bills_are_prepended(fake_db) -> None:
    relay = LiveUpdateRelay()
    store = LocalStore()
    store.attach(relay)
    tile = catalog_service.add_product({"name": "Tile", "quantity": "50", "price": "100"}, relay=relay)

    first = create_bill(
        CreateBillRequest(customer=PartySnapshot(name="A"), items=[tile.line(Decimal("1"))], jurisdiction="same"),
        relay=relay,
    )
    second = create_bill(
        CreateBillRequest(customer=PartySnapshot(name="B"), items=[tile.line(Decimal("1"))], jurisdiction="same"),
        relay=relay,
    )

    assert [b.bill_id for b in store.bills] == [second.bill.bill_id, first.bill.bill_id]


def test_load_reads_everything(fake_db) -> None:
    fake_db.seed("inventory", {"id": 1, "name": "Tile", "quantity": "5"})
    fake_db.seed("customers", {"id": 1, "name": "Asha Traders"})
    fake_db.seed("settings", {"type": "company", "data": {"name": "Plastiwood"}})

    store = LocalStore().load()

    assert [p.name for p in store.products] == ["Tile"]
    assert [c.name for c in store.customers] == ["Asha Traders"]
    assert store.settings == {"company": {"name": "Plastiwood"}, "banking": {}}
    assert store.bills == []
