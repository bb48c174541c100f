"""
Tests for `services/csv_export_service.py`.

Covers contract rules:
- Leading formula characters are stripped from text cells and the strip is logged.
- Statements carry a party header block followed by one row per document.
- Amounts use two decimals; dates use day/month/year.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

from domain.invoice import Bill, PartySnapshot, compute_totals
from domain.line_item import LineItem
from domain.party import Customer
from domain.payment import PaymentLedger
from repositories import bill_repository, party_repository
from services.csv_export_service import (
    customer_report_csv,
    generate_customer_report,
    report_filename,
    sanitize_csv_field,
)
from services.report_service import customer_summary

NOW = datetime(2025, 8, 20, 12, 0, tzinfo=timezone.utc)


def _bill(*, name: str = "Asha Traders", paid: str = "0", invoice_no=None) -> Bill:
    items = (
        LineItem(product_ref=1, quantity=Decimal("3"), unit_price=Decimal("33.33"), tax_rate=Decimal("18"), name="Tile"),
    )
    totals = compute_totals(items, "other")
    ledger = PaymentLedger.open(totals.grand_total)
    if Decimal(paid) > 0:
        ledger = ledger.record_payment(Decimal(paid), NOW)
    return Bill(
        bill_id=None,
        customer=PartySnapshot(name=name),
        items=items,
        totals=totals,
        ledger=ledger,
        invoice_no=invoice_no,
        created_at=NOW,
    )


def _rows(content: str) -> list[list[str]]:
    return list(csv.reader(StringIO(content)))


def test_sanitize_strips_formula_prefix_and_logs(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="services.csv_export_service"):
        assert sanitize_csv_field("=+HYPERLINK(x)", "name") == "HYPERLINK(x)"

    assert "CSV injection character(s) stripped from field 'name'" in caplog.text
    assert sanitize_csv_field("  Asha Traders ", "name") == "Asha Traders"
    assert sanitize_csv_field(None) == ""


def test_report_filename() -> None:
    assert report_filename("customer", "Asha Traders") == "Customer_Report_Asha_Traders.csv"
    assert report_filename("supplier", " M/s. Depot & Co ") == "Supplier_Report_M_s_Depot_Co.csv"
    assert report_filename("customer", "!!!") == "Customer_Report_Unknown.csv"


def test_customer_statement_rows() -> None:
    bill = replace(_bill(paid="50", invoice_no="@INV-9"), bill_id=12)
    summary = customer_summary(Customer(customer_id=1, name="Asha Traders", gst="29ABCDE"), [bill])

    rows = _rows(customer_report_csv(summary))

    assert rows[0] == ["Customer", "Asha Traders"]
    assert rows[2] == ["GST No", "29ABCDE"]
    assert rows[3] == ["Total Orders", "1"]
    assert rows[4] == ["Total Business (INR)", "117.99"]
    assert rows[5] == ["Outstanding (INR)", "67.99"]
    assert rows[6] == []
    assert rows[7][0] == "Bill #"
    assert rows[8] == ["12", "INV-9", "20/08/2025", "1", "117.99", "50.00", "67.99", "PARTIAL"]


def test_generate_customer_report_reads_gateway(fake_db) -> None:
    customer = party_repository.create_customer(Customer(customer_id=None, name="Asha Traders"), now=NOW)
    bill_repository.insert_bill(_bill(paid="117.9882"))
    bill_repository.insert_bill(_bill(name="Someone Else"))

    filename, content = generate_customer_report(customer.customer_id)

    rows = _rows(content)
    assert filename == "Customer_Report_Asha_Traders.csv"
    assert rows[3] == ["Total Orders", "1"]
    assert rows[8][-1] == "PAID"
    assert len(rows) == 9
