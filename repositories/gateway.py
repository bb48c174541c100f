"""
Shared plumbing for the Supabase (PostgREST) repositories.

Every query goes through ``execute`` so that transport and database failures
surface uniformly as GatewayError, with the action that failed in the message.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, List, Mapping, Optional

from postgrest.exceptions import APIError  # type: ignore[import-not-found]

from domain.errors import GatewayError, NotFoundError
from domain.values import require_utc_timestamp
from repositories import client

logger = logging.getLogger(__name__)


def table(name: str) -> Any:
    """Start a query builder on ``name``."""

    return client.get_supabase().table(name)


def execute(query: Any, *, action: str) -> List[Mapping[str, Any]]:
    """
    Execute a PostgREST query and return its rows.

    Raises:
        GatewayError: the request failed or the response carries an error.
    """

    try:
        response = query.execute()
    except APIError as e:
        logger.error(
            f"Gateway call failed: {action}",
            extra={"action": action, "code": getattr(e, "code", None), "error": str(e)},
        )
        raise GatewayError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        logger.error(f"Gateway call failed: {action}", extra={"action": action, "error": str(error)})
        raise GatewayError(f"Failed to {action}: {error}")

    return list(getattr(response, "data", None) or [])


def first_or_raise(rows: List[Mapping[str, Any]], entity: str, record_id: int) -> Mapping[str, Any]:
    if not rows:
        raise NotFoundError(entity, record_id)
    return rows[0]


def parse_utc_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    Naive values are taken to be UTC.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def to_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    if dt is None:
        return None
    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def blank_to_none(value: Any) -> Optional[str]:
    """Collapse empty or whitespace-only strings to None, stripping the rest."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "blank_to_none",
    "execute",
    "first_or_raise",
    "parse_date",
    "parse_utc_datetime",
    "table",
    "to_iso_utc",
]
