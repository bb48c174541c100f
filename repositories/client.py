"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
created on first use so that importing repositories (e.g. in tests, which
install a fake client) does not require credentials.

Environment variables required (loaded from the project's .env file):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import os
from typing import Any, Optional

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import create_client  # type: ignore[import-not-found]

import config  # noqa: F401  (loads .env)

_client: Optional[Any] = None


def _require_env(name: str, hint: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


def get_supabase() -> Any:
    """Return the process-wide Supabase client, creating it on first call."""

    global _client
    if _client is None:
        url = _require_env("SUPABASE_URL", "Set SUPABASE_URL to your Supabase project URL.")
        key = _require_env("SUPABASE_KEY", "Set SUPABASE_KEY to your Supabase API key.")
        _client = create_client(url, key)
    return _client


def use_client(client: Any) -> None:
    """Install an already-built client (scripts with custom options, tests)."""

    global _client
    _client = client


__all__ = ["get_supabase", "use_client"]
