"""
Check inventory status - stock value, low stock and out of stock products.
"""

import argparse
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from domain.values import decimal_to_wire, format_currency
from logging_config import setup_logging
from services.catalog_service import list_products


def check_inventory_status(threshold: Decimal) -> int:
    """Print a stock summary. Returns the number of products needing attention."""

    products = list_products()
    low = [p for p in products if p.is_low_stock(threshold)]
    out = [p for p in products if p.is_out_of_stock()]
    below_minimum = [p for p in products if p.min_stock > 0 and p.quantity < p.min_stock]
    stock_value = sum((p.stock_value for p in products), Decimal("0"))

    print("=" * 50)
    print("INVENTORY STATUS")
    print("=" * 50)
    print(f"Total products:            {len(products)}")
    print(f"Stock value:               {format_currency(stock_value, config.CURRENCY_SYMBOL)}")
    print(f"Low stock (< {decimal_to_wire(threshold)}):          {len(low)}")
    print(f"Out of stock:              {len(out)}")
    print(f"Below minimum stock:       {len(below_minimum)}")
    print("=" * 50)

    if out:
        print("\nOut of stock:")
        print("-" * 50)
        for product in out:
            print(f"{product.name} ({product.size or '-'} {product.unit or ''})")

    if low:
        print("\nLow stock:")
        print("-" * 50)
        for product in low:
            print(f"{product.name} - only {decimal_to_wire(product.quantity)} {product.unit or ''} left")

    if below_minimum:
        print("\nBelow minimum stock:")
        print("-" * 50)
        for product in below_minimum:
            print(
                f"{product.name}: {decimal_to_wire(product.quantity)} on hand, "
                f"minimum {decimal_to_wire(product.min_stock)}"
            )

    return len(low) + len(out)


def main() -> int:
    parser = argparse.ArgumentParser(description="Report low and out of stock products")
    parser.add_argument(
        "--threshold",
        "-t",
        type=Decimal,
        default=config.LOW_STOCK_THRESHOLD,
        help="Quantity below which a product counts as low stock (default: %(default)s)"
    )
    args = parser.parse_args()

    setup_logging()
    check_inventory_status(args.threshold)
    return 0


if __name__ == "__main__":
    sys.exit(main())
