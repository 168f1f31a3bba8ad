"""Single ingestion boundary for "when" values.

The store and older clients hand back several shapes for the same instant:
aware or naive datetimes, ISO-8601 strings (with or without ``Z``), epoch
seconds or milliseconds, and serialized document-store timestamps such as
``{"_seconds": 1700000000, "_nanoseconds": 0}``. Everything is converted to an
aware UTC ``datetime`` here, before business logic sees it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

# Epoch values above this are milliseconds (year 5138 in seconds).
_MILLIS_THRESHOLD = 100_000_000_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_epoch(value: float) -> datetime:
    if abs(value) >= _MILLIS_THRESHOLD:
        value = value / 1000
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _from_mapping(value: dict[str, Any]) -> datetime:
    seconds = value.get("_seconds", value.get("seconds"))
    if seconds is None:
        raise ValueError(f"Unrecognized timestamp mapping: {sorted(value)}")
    nanos = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
    return datetime.fromtimestamp(int(seconds) + int(nanos) / 1_000_000_000, tz=timezone.utc)


def _from_string(value: str) -> datetime:
    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp string")
    try:
        return _from_epoch(float(text))
    except ValueError:
        pass
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def normalize_timestamp(value: Any) -> datetime | None:
    """Return ``value`` as an aware UTC datetime (``None`` passes through)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError("Booleans are not timestamps")
    elif isinstance(value, (int, float)):
        parsed = _from_epoch(float(value))
    elif isinstance(value, str):
        parsed = _from_string(value)
    elif isinstance(value, dict):
        parsed = _from_mapping(value)
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        # Naive values come from SQLite or legacy writers and are UTC.
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
