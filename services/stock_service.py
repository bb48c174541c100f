"""
Stock service: apply a planned set of stock adjustments as one unit.

Each adjustment is a conditional write (the stored quantity must still equal
``before``). If any write, or the record write that accompanies the stock
movement, fails, the adjustments already applied are reverted in reverse
order and the original error is re-raised. Callers observe all-or-nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, TypeVar

from domain.errors import GatewayError
from domain.inventory import StockAdjustment
from repositories import inventory_repository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _compensate(applied: List[StockAdjustment], now: datetime) -> None:
    for adjustment in reversed(applied):
        try:
            inventory_repository.apply_adjustment(adjustment.reversed(), now=now)
        except GatewayError as e:
            # The original error is still raised; this product needs manual correction.
            logger.error(
                f"Stock rollback failed for product {adjustment.product_id}",
                extra={
                    "product_id": adjustment.product_id,
                    "expected_quantity": str(adjustment.after),
                    "restore_quantity": str(adjustment.before),
                    "error": str(e),
                },
            )
        else:
            logger.warning(
                f"Stock rolled back for product {adjustment.product_id}",
                extra={"product_id": adjustment.product_id, "quantity": str(adjustment.before)},
            )


def apply_adjustments(
    adjustments: Sequence[StockAdjustment],
    commit: Optional[Callable[[], T]] = None,
    *,
    now: Optional[datetime] = None,
) -> Optional[T]:
    """
    Apply ``adjustments`` and then run ``commit`` (typically the record insert).

    Returns:
        Whatever ``commit`` returns, or None when no commit step is given.

    Raises:
        StockConflictError: a product changed between planning and writing.
        GatewayError: a stock write or the commit step failed.
        Any exception raised by ``commit``; stock is restored first.
    """

    now = now or datetime.now(timezone.utc)
    applied: List[StockAdjustment] = []
    try:
        for adjustment in adjustments:
            if adjustment.delta == 0:
                continue
            inventory_repository.apply_adjustment(adjustment, now=now)
            applied.append(adjustment)
        return commit() if commit is not None else None
    except Exception:
        if applied:
            _compensate(applied, now)
        raise


__all__ = ["apply_adjustments"]
