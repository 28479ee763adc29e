from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


UTC = timezone.utc


def utc_now() -> datetime:
    """Return the current time in UTC."""

    return datetime.now(UTC)


def to_storage_timestamp(moment: datetime) -> str:
    """Normalize timestamps before writing to SQLite."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def parse_iso(timestamp: str) -> datetime:
    """Parse an ISO timestamp, defaulting to UTC when timezone is absent."""

    dt = date_parser.isoparse(timestamp)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def clean_text(value: Any) -> Optional[str]:
    """Trim surrounding whitespace; ``None`` stays ``None``."""

    if value is None:
        return None
    return str(value).strip()


__all__ = [
    "UTC",
    "clean_text",
    "parse_iso",
    "to_storage_timestamp",
    "utc_now",
]
