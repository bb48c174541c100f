"""
Application configuration.

Values are read from the environment after loading the project's ``.env``
file. Supabase credentials are read lazily by ``repositories.client``.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=ENV_PATH)

# Products with 0 < quantity < LOW_STOCK_THRESHOLD are reported as low stock.
LOW_STOCK_THRESHOLD: Decimal = Decimal(os.getenv("LOW_STOCK_THRESHOLD", "5"))

CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₹")

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: Optional[str] = os.getenv("LOG_FILE")

__all__ = ["ENV_PATH", "LOW_STOCK_THRESHOLD", "CURRENCY_SYMBOL", "LOG_LEVEL", "LOG_FILE"]
