"""
Reporting service: dashboard metrics, top products and party statements.

The calculations are pure functions over already-loaded documents so they can
run against a LocalStore as well as against fresh gateway reads
(``load_dashboard``). Amounts come from the payment ledgers, not from the
status column, so a partially paid bill counts what was actually received.
Nothing here rounds; callers round for display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar, Union

import config
from domain.errors import ValidationError
from domain.invoice import Bill, Purchase
from domain.inventory import Product
from domain.party import Customer, Supplier, normalize_name
from domain.payment import PaymentStatus
from domain.values import ZERO
from repositories import bill_repository, inventory_repository, party_repository, purchase_repository

_HUNDRED = Decimal("100")

Document = TypeVar("Document", Bill, Purchase)


class Period(str, Enum):
    ALL = "all"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @staticmethod
    def parse(value: object) -> "Period":
        if isinstance(value, Period):
            return value
        try:
            return Period(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"period must be one of all, month, quarter, year; got {value!r}", field="period"
            ) from None


def _quarter(moment: datetime) -> int:
    return (moment.month - 1) // 3


def filter_by_period(
    documents: Iterable[Document],
    period: Union[Period, str],
    *,
    now: Optional[datetime] = None,
) -> List[Document]:
    """
    Keep the documents created in the current month, quarter or year.

    Documents without a creation time only appear under ``all``.
    """

    period = Period.parse(period)
    docs = list(documents)
    if period is Period.ALL:
        return docs

    now = now or datetime.now(timezone.utc)

    def in_period(created: Optional[datetime]) -> bool:
        if created is None or created.year != now.year:
            return False
        if period is Period.MONTH:
            return created.month == now.month
        if period is Period.QUARTER:
            return _quarter(created) == _quarter(now)
        return True

    return [d for d in docs if in_period(d.created_at)]


def period_label(period: Union[Period, str], *, now: Optional[datetime] = None) -> str:
    period = Period.parse(period)
    now = now or datetime.now(timezone.utc)
    if period is Period.MONTH:
        return now.strftime("%B %Y")
    if period is Period.QUARTER:
        return f"Q{_quarter(now) + 1} {now.year}"
    if period is Period.YEAR:
        return f"Year {now.year}"
    return "All Time"


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * _HUNDRED if whole > ZERO else ZERO


@dataclass(frozen=True, slots=True)
class DashboardMetrics:
    """
    Owner dashboard figures for one period.

    Inventory and party counts are point-in-time and ignore the period.
    """
    period: Period
    total_revenue: Decimal
    average_order_value: Decimal
    inventory_value: Decimal
    pending_payments: Decimal
    gst_collected: Decimal
    total_bills: int
    paid_bills: int
    unpaid_bills: int
    collection_rate: Decimal
    total_products: int
    low_stock_count: int
    out_of_stock_count: int
    total_purchases: Decimal
    purchase_count: int
    supplier_payment_rate: Decimal
    customer_count: int
    supplier_count: int


def dashboard_metrics(
    bills: Sequence[Bill],
    purchases: Sequence[Purchase],
    products: Sequence[Product],
    *,
    customer_count: int = 0,
    supplier_count: int = 0,
    period: Union[Period, str] = Period.ALL,
    now: Optional[datetime] = None,
    low_stock_threshold: Optional[Decimal] = None,
) -> DashboardMetrics:
    period = Period.parse(period)
    threshold = config.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
    period_bills = filter_by_period(bills, period, now=now)
    period_purchases = filter_by_period(purchases, period, now=now)

    total_revenue = sum((b.totals.grand_total for b in period_bills), ZERO)
    total_bills = len(period_bills)
    paid_bills = sum(1 for b in period_bills if b.status is PaymentStatus.PAID)

    total_purchases = sum((p.totals.grand_total for p in period_purchases), ZERO)
    purchases_paid = sum((p.ledger.amount_paid for p in period_purchases), ZERO)

    return DashboardMetrics(
        period=period,
        total_revenue=total_revenue,
        average_order_value=total_revenue / total_bills if total_bills else ZERO,
        inventory_value=sum((p.stock_value for p in products), ZERO),
        pending_payments=sum((b.ledger.amount_pending for b in period_bills), ZERO),
        gst_collected=sum((b.totals.total_tax for b in period_bills), ZERO),
        total_bills=total_bills,
        paid_bills=paid_bills,
        unpaid_bills=total_bills - paid_bills,
        collection_rate=_percent(Decimal(paid_bills), Decimal(total_bills)),
        total_products=len(products),
        low_stock_count=sum(1 for p in products if p.is_low_stock(threshold)),
        out_of_stock_count=sum(1 for p in products if p.is_out_of_stock()),
        total_purchases=total_purchases,
        purchase_count=len(period_purchases),
        supplier_payment_rate=_percent(purchases_paid, total_purchases),
        customer_count=customer_count,
        supplier_count=supplier_count,
    )


def load_dashboard(
    period: Union[Period, str] = Period.ALL, *, now: Optional[datetime] = None
) -> DashboardMetrics:
    """Compute dashboard metrics from fresh gateway reads."""

    return dashboard_metrics(
        bill_repository.list_bills(),
        purchase_repository.list_purchases(),
        inventory_repository.list_products(),
        customer_count=len(party_repository.list_customers()),
        supplier_count=len(party_repository.list_suppliers()),
        period=period,
        now=now,
    )


@dataclass(frozen=True, slots=True)
class ProductSales:
    product_ref: int
    name: str
    size: Optional[str]
    unit: Optional[str]
    quantity: Decimal
    revenue: Decimal


def top_products(bills: Iterable[Bill], limit: int = 5) -> List[ProductSales]:
    """Products ranked by quantity sold (ties keep first-seen order)."""

    sales: Dict[int, ProductSales] = {}
    for bill in bills:
        for line in bill.items:
            current = sales.get(line.product_ref)
            if current is None:
                sales[line.product_ref] = ProductSales(
                    product_ref=line.product_ref,
                    name=line.name,
                    size=line.size,
                    unit=line.unit,
                    quantity=line.quantity,
                    revenue=line.line_total,
                )
            else:
                sales[line.product_ref] = ProductSales(
                    product_ref=current.product_ref,
                    name=current.name,
                    size=current.size,
                    unit=current.unit,
                    quantity=current.quantity + line.quantity,
                    revenue=current.revenue + line.line_total,
                )
    ranked = sorted(sales.values(), key=lambda s: s.quantity, reverse=True)
    return ranked[:limit]


@dataclass(frozen=True, slots=True)
class PartySummary:
    """Account statement totals for one customer or supplier."""
    name: str
    phone: Optional[str]
    gst: Optional[str]
    document_count: int
    total_amount: Decimal
    amount_paid: Decimal
    outstanding: Decimal
    documents: List[Union[Bill, Purchase]] = field(default_factory=list)


def _belongs(name: str, phone: Optional[str], party_name: str, party_phone: Optional[str]) -> bool:
    if normalize_name(name) == normalize_name(party_name):
        return True
    return bool(phone and party_phone and phone == party_phone)


def _summarize(
    name: str, phone: Optional[str], gst: Optional[str], documents: List[Union[Bill, Purchase]]
) -> PartySummary:
    return PartySummary(
        name=name,
        phone=phone,
        gst=gst,
        document_count=len(documents),
        total_amount=sum((d.totals.grand_total for d in documents), ZERO),
        amount_paid=sum((d.ledger.amount_paid for d in documents), ZERO),
        outstanding=sum((d.ledger.amount_pending for d in documents), ZERO),
        documents=documents,
    )


def customer_summary(customer: Customer, bills: Iterable[Bill]) -> PartySummary:
    """The customer's bills (matched by name or phone) with totals."""

    mine: List[Union[Bill, Purchase]] = [
        b for b in bills if _belongs(b.customer.name, b.customer.phone, customer.name, customer.phone)
    ]
    return _summarize(customer.name, customer.phone, customer.gst, mine)


def supplier_summary(supplier: Supplier, purchases: Iterable[Purchase]) -> PartySummary:
    mine: List[Union[Bill, Purchase]] = [
        p for p in purchases if _belongs(p.supplier.name, p.supplier.phone, supplier.name, supplier.phone)
    ]
    return _summarize(supplier.name, supplier.phone, supplier.gst, mine)


__all__ = [
    "DashboardMetrics",
    "PartySummary",
    "Period",
    "ProductSales",
    "customer_summary",
    "dashboard_metrics",
    "filter_by_period",
    "load_dashboard",
    "period_label",
    "supplier_summary",
    "top_products",
]
