"""
Tests for `services/catalog_service.py` and `services/quote_service.py`.

Covers contract rules:
- Products are created from loosely typed input and announced with inventory:updated (add).
- Partial updates change only the supplied fields.
- Manual stock removal cannot go below zero; additions must be positive.
- Low stock lists only 0 < quantity < threshold.
- A proforma computes totals but never touches stock.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from domain.errors import InsufficientStockError, ValidationError
from domain.invoice import PartySnapshot
from domain.line_item import LineItem
from services import catalog_service, quote_service
from services.quote_service import CreateProformaRequest


@pytest.fixture
def plywood(fake_db, relay):
    return catalog_service.add_product(
        {"name": "Plywood", "size": "18mm", "unit": "pcs", "quantity": "100", "price": 1800, "gst_rate": "18"},
        relay=relay,
    )


def test_add_product_publishes_add(plywood, relay) -> None:
    assert plywood.product_id is not None
    assert plywood.price == Decimal("1800")
    assert relay.received[-1].name == "inventory:updated"
    assert relay.received[-1].payload["action"] == "add"


def test_add_product_requires_name_and_numbers(fake_db, relay) -> None:
    with pytest.raises(ValidationError):
        catalog_service.add_product({"name": "", "quantity": 1}, relay=relay)

    with pytest.raises(ValidationError):
        catalog_service.add_product({"name": "Plywood", "price": "cheap"}, relay=relay)


def test_update_product_is_partial(plywood, relay) -> None:
    updated = catalog_service.update_product(plywood.product_id, {"colour": "Brown"}, relay=relay)

    assert updated.colour == "Brown"
    assert updated.quantity == Decimal("100")
    assert relay.received[-1].payload["action"] == "update"


def test_remove_and_add_stock(plywood, relay) -> None:
    after_removal = catalog_service.remove_stock(plywood.product_id, "30", relay=relay)
    assert after_removal.quantity == Decimal("70")

    after_addition = catalog_service.add_stock(plywood.product_id, 5, relay=relay)
    assert after_addition.quantity == Decimal("75")

    with pytest.raises(InsufficientStockError):
        catalog_service.remove_stock(plywood.product_id, "76", relay=relay)

    with pytest.raises(ValidationError):
        catalog_service.add_stock(plywood.product_id, "-5", relay=relay)


def test_delete_product_publishes_delete(plywood, relay) -> None:
    catalog_service.delete_product(plywood.product_id, relay=relay)

    assert relay.received[-1].payload == {"action": "delete", "id": plywood.product_id}
    assert catalog_service.list_products() == []


def test_low_and_out_of_stock_lists(fake_db, relay) -> None:
    for name, quantity in [("A", "0"), ("B", "3"), ("C", "5"), ("D", "20")]:
        catalog_service.add_product({"name": name, "quantity": quantity}, relay=relay)

    assert [p.name for p in catalog_service.low_stock_products(Decimal("5"))] == ["B"]
    assert [p.name for p in catalog_service.out_of_stock_products()] == ["A"]


def test_proforma_leaves_stock_untouched(plywood, relay, fake_db) -> None:
    line = LineItem(
        product_ref=plywood.product_id, quantity=Decimal("500"), unit_price=Decimal("1800"), tax_rate=Decimal("18")
    )

    proforma = quote_service.create_proforma(
        CreateProformaRequest(customer=PartySnapshot(name="Asha Traders"), items=[line], jurisdiction="other"),
        relay=relay,
    )

    assert proforma.totals.grand_total == Decimal("1062000")
    assert proforma.items[0].name == "Plywood"
    assert fake_db.row("inventory", plywood.product_id)["quantity"] == "100"
    assert relay.received[-1].name == "proforma:created"

    quote_service.delete_proforma(proforma.proforma_id, relay=relay)
    assert quote_service.list_proformas() == []
    assert relay.received[-1].name == "proforma:deleted"
