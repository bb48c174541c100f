"""
Export a customer or supplier account statement to CSV.

Examples:
  # Statement for customer 12
  python export_party_report.py customer 12

  # Statement for supplier 3 into a chosen file
  python export_party_report.py supplier 3 --output acme.csv
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import BillingError
from logging_config import setup_logging
from services.csv_export_service import generate_customer_report, generate_supplier_report


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export a customer or supplier statement to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("kind", choices=["customer", "supplier"], help="Which kind of party")
    parser.add_argument("party_id", type=int, help="Customer or supplier id")
    parser.add_argument("--output", "-o", help="Output path (default: Customer_Report_<name>.csv)")
    args = parser.parse_args()

    setup_logging()
    try:
        if args.kind == "customer":
            filename, content = generate_customer_report(args.party_id)
        else:
            filename, content = generate_supplier_report(args.party_id)
    except BillingError as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1

    output = Path(args.output or filename)
    output.write_text(content, encoding="utf-8", newline="")
    print(f"Output file: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
