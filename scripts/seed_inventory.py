"""
Seed the inventory with sample construction-material products.

Only runs against an empty inventory unless --force is given.
For development/testing purposes only.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from logging_config import setup_logging
from services.catalog_service import add_product, list_products

SAMPLE_PRODUCTS = [
    {"name": "Steel Rebar", "description": "TMT Steel Rebar", "hsn": "72142000", "size": "12mm",
     "colour": "Silver", "unit": "kg", "quantity": 1000, "min_stock": 500, "price": "65.00", "gst_rate": 18},
    {"name": "Portland Cement", "description": "OPC 53 Grade Cement", "hsn": "25232900", "size": "50kg",
     "colour": "Grey", "unit": "bag", "quantity": 500, "min_stock": 200, "price": "350.00", "gst_rate": 28},
    {"name": "Plywood", "description": "Commercial Plywood", "hsn": "44121300", "size": "18mm",
     "colour": "Brown", "unit": "pcs", "quantity": 100, "min_stock": 50, "price": "1800.00", "gst_rate": 18},
    {"name": "Concrete Mix", "description": "Ready Mix Concrete", "hsn": "38244090", "size": "M25",
     "colour": "Grey", "unit": "m3", "quantity": 50, "min_stock": 20, "price": "4500.00", "gst_rate": 18},
    {"name": "Plastiwood Deck Board", "description": "Premium composite deck board", "hsn": "39259000",
     "size": "6ft", "colour": "Brown", "unit": "pcs", "quantity": 150, "min_stock": 50, "price": "2500.00",
     "gst_rate": 18},
]


def seed_inventory(force: bool = False) -> int:
    """Insert the sample products. Returns how many were created."""

    existing = list_products()
    if existing and not force:
        print(f"Inventory already has {len(existing)} products; nothing seeded (use --force).")
        return 0

    created = 0
    for fields in SAMPLE_PRODUCTS:
        product = add_product(fields)
        print(f"  + {product.name} (id {product.product_id})")
        created += 1
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sample inventory products")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Seed even when the inventory already has products"
    )
    args = parser.parse_args()

    setup_logging()
    try:
        print("=" * 60)
        print("SEEDING SAMPLE INVENTORY")
        print("=" * 60)
        created = seed_inventory(force=args.force)
        print(f"\nProducts created: {created}")
        return 0
    except KeyboardInterrupt:
        print("\n\nSeeding interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
