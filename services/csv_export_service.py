"""
CSV export service for customer and supplier account statements.

Generates one row per bill (or purchase) with its amount, what has been paid,
what is outstanding and the payment status.

Security:
- CSV Injection Prevention: Sanitizes all text fields to prevent formula execution
- Security Logging: Logs when dangerous characters are stripped
"""

from __future__ import annotations

import csv
import logging
import re
from io import StringIO
from typing import List

from domain.invoice import Bill, Purchase
from domain.values import round_currency
from repositories import bill_repository, party_repository, purchase_repository
from services.report_service import PartySummary, customer_summary, supplier_summary

logger = logging.getLogger(__name__)

_DATE_FORMAT = "%d/%m/%Y"


def sanitize_csv_field(value: str | None, field_name: str = "unknown") -> str:
    """
    Sanitize field to prevent CSV injection attacks with security logging.

    Strips leading characters that can trigger formula execution in Excel/Sheets:
    =, +, -, @, tab, carriage return

    If dangerous characters are found and stripped, a warning is logged for
    security monitoring.

    Example:
        sanitize_csv_field("=HYPERLINK(...)", "customer_name")
        # Returns "HYPERLINK(...)" and logs warning about stripped "=" character

        sanitize_csv_field("Asha Traders", "customer_name")
        # Returns "Asha Traders" (unchanged, no logging)
    """
    if value is None or value == "":
        return ""

    text = str(value).strip()
    original_text = text
    dangerous_chars = {'=', '+', '-', '@', '\t', '\r'}

    stripped_chars = []
    while text and text[0] in dangerous_chars:
        stripped_chars.append(text[0])
        text = text[1:]

    if stripped_chars:
        logger.warning(
            f"CSV injection character(s) stripped from field '{field_name}'",
            extra={
                "field_name": field_name,
                "stripped_characters": "".join(stripped_chars),
                "original_value": original_text[:100],
                "sanitized_value": text[:100],
                "modification_type": "csv_injection_prevention"
            }
        )

    return text


def report_filename(kind: str, name: str) -> str:
    """``Customer_Report_Asha_Traders.csv`` style download name."""

    safe = re.sub(r"[^A-Za-z0-9]+", "_", name.strip()).strip("_") or "Unknown"
    return f"{kind.capitalize()}_Report_{safe}.csv"


def _money(value) -> str:
    return f"{round_currency(value):.2f}"


def _created(document: Bill | Purchase) -> str:
    return document.created_at.strftime(_DATE_FORMAT) if document.created_at else ""


def _write_summary_header(writer, label: str, summary: PartySummary) -> None:
    writer.writerow([label, sanitize_csv_field(summary.name, "name")])
    writer.writerow(["Phone", sanitize_csv_field(summary.phone, "phone")])
    writer.writerow(["GST No", sanitize_csv_field(summary.gst, "gst")])
    writer.writerow(["Total Orders", summary.document_count])
    writer.writerow(["Total Business (INR)", _money(summary.total_amount)])
    writer.writerow(["Outstanding (INR)", _money(summary.outstanding)])
    writer.writerow([])


def customer_report_csv(summary: PartySummary) -> str:
    """Render a customer statement. Rows follow the summary's document order."""

    output = StringIO()
    writer = csv.writer(output)
    _write_summary_header(writer, "Customer", summary)

    writer.writerow([
        "Bill #",
        "Invoice No",
        "Date",
        "Items Count",
        "Amount (INR)",
        "Paid (INR)",
        "Pending (INR)",
        "Payment Status",
    ])
    bills: List[Bill] = [d for d in summary.documents if isinstance(d, Bill)]
    for bill in bills:
        writer.writerow([
            bill.bill_id,
            sanitize_csv_field(bill.invoice_no, "invoice_no"),
            _created(bill),
            len(bill.items),
            _money(bill.totals.grand_total),
            _money(bill.ledger.amount_paid),
            _money(bill.ledger.amount_pending),
            bill.status.value.upper(),
        ])
    return output.getvalue()


def supplier_report_csv(summary: PartySummary) -> str:
    output = StringIO()
    writer = csv.writer(output)
    _write_summary_header(writer, "Supplier", summary)

    writer.writerow([
        "Purchase #",
        "Invoice No",
        "Purchase Date",
        "Items Count",
        "Amount (INR)",
        "Paid (INR)",
        "Pending (INR)",
        "Payment Status",
    ])
    purchases: List[Purchase] = [d for d in summary.documents if isinstance(d, Purchase)]
    for purchase in purchases:
        writer.writerow([
            purchase.purchase_id,
            sanitize_csv_field(purchase.invoice_no, "invoice_no"),
            purchase.purchase_date.strftime(_DATE_FORMAT),
            len(purchase.items),
            _money(purchase.totals.grand_total),
            _money(purchase.ledger.amount_paid),
            _money(purchase.ledger.amount_pending),
            purchase.status.value.upper(),
        ])
    return output.getvalue()


def generate_customer_report(customer_id: int) -> tuple[str, str]:
    """
    Build the CSV statement for one customer.

    Returns:
        (filename, csv_content)

    Raises:
        NotFoundError: no such customer.
    """
    customer = party_repository.get_customer(customer_id)
    summary = customer_summary(customer, bill_repository.list_bills())
    logger.info(
        f"Customer report generated: {customer_id}",
        extra={"customer_id": customer_id, "rows": summary.document_count},
    )
    return report_filename("customer", customer.name), customer_report_csv(summary)


def generate_supplier_report(supplier_id: int) -> tuple[str, str]:
    supplier = party_repository.get_supplier(supplier_id)
    summary = supplier_summary(supplier, purchase_repository.list_purchases())
    logger.info(
        f"Supplier report generated: {supplier_id}",
        extra={"supplier_id": supplier_id, "rows": summary.document_count},
    )
    return report_filename("supplier", supplier.name), supplier_report_csv(summary)


__all__ = [
    "customer_report_csv",
    "generate_customer_report",
    "generate_supplier_report",
    "report_filename",
    "sanitize_csv_field",
    "supplier_report_csv",
]
