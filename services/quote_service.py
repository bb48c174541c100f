"""
Quote service for proforma invoices.

A proforma uses the same builder as a bill but never touches stock or
payments. Products are only read to fill line snapshots; stock levels are
not checked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

from domain.errors import ValidationError
from domain.invoice import PartySnapshot, Proforma, compute_totals
from domain.line_item import LineItem
from domain.tax import Jurisdiction
from repositories import inventory_repository, proforma_repository
from services import live_updates as events
from services.billing_service import fill_line_snapshot
from services.live_updates import LiveUpdateRelay, get_relay

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateProformaRequest:
    customer: PartySnapshot
    items: Sequence[LineItem]
    jurisdiction: Union[Jurisdiction, str]
    proforma_no: Optional[str] = None


def create_proforma(
    request: CreateProformaRequest,
    *,
    now: Optional[datetime] = None,
    relay: Optional[LiveUpdateRelay] = None,
) -> Proforma:
    now = now or datetime.now(timezone.utc)
    totals = compute_totals(request.items, request.jurisdiction)

    products = inventory_repository.get_products_by_ids([line.product_ref for line in request.items])
    missing = sorted({line.product_ref for line in request.items} - set(products))
    if missing:
        raise ValidationError(
            f"Unknown product: {', '.join(str(m) for m in missing)}", field="product_ref"
        )
    items = tuple(fill_line_snapshot(line, products[line.product_ref]) for line in request.items)

    saved = proforma_repository.insert_proforma(
        Proforma(
            proforma_id=None,
            customer=request.customer,
            items=items,
            totals=totals,
            proforma_no=request.proforma_no,
            created_at=now,
        ),
        now=now,
    )
    logger.info(
        f"Proforma created: {saved.proforma_id}",
        extra={"proforma_id": saved.proforma_id, "total": str(saved.totals.grand_total)},
    )
    (relay or get_relay()).publish(events.PROFORMA_CREATED, proforma=saved)
    return saved


def list_proformas() -> List[Proforma]:
    return proforma_repository.list_proformas()


def delete_proforma(proforma_id: int, *, relay: Optional[LiveUpdateRelay] = None) -> None:
    proforma_repository.delete_proforma(proforma_id)
    logger.info(f"Proforma deleted: {proforma_id}", extra={"proforma_id": proforma_id})
    (relay or get_relay()).publish(events.PROFORMA_DELETED, id=proforma_id)


__all__ = ["CreateProformaRequest", "create_proforma", "delete_proforma", "list_proformas"]
