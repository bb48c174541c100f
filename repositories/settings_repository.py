"""Company and banking settings, stored as one JSON document per settings type."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from domain.errors import ValidationError
from repositories.gateway import execute, table, to_iso_utc

_SETTINGS_TABLE: str = "settings"

SETTINGS_TYPES = ("company", "banking")


def _check_type(settings_type: str) -> None:
    if settings_type not in SETTINGS_TYPES:
        raise ValidationError(
            f"settings type must be one of {', '.join(SETTINGS_TYPES)}; got {settings_type!r}",
            field="type",
        )


def get_settings(settings_type: str) -> Dict[str, Any]:
    """Return the stored document, or an empty dict when none has been saved."""

    _check_type(settings_type)
    rows = execute(
        table(_SETTINGS_TABLE).select("*").eq("type", settings_type).limit(1),
        action=f"fetch {settings_type} settings",
    )
    if not rows:
        return {}
    return dict(rows[0].get("data") or {})


def save_settings(
    settings_type: str, data: Mapping[str, Any], *, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Insert or replace the document for ``settings_type``."""

    _check_type(settings_type)
    payload = {
        "type": settings_type,
        "data": dict(data),
        "updated_at_utc": to_iso_utc(now or datetime.now(timezone.utc), name="updated_at"),
    }
    rows = execute(
        table(_SETTINGS_TABLE).upsert(payload, on_conflict="type"),
        action=f"save {settings_type} settings",
    )
    return dict((rows[0].get("data") if rows else None) or payload["data"])


__all__ = ["SETTINGS_TYPES", "get_settings", "save_settings"]
