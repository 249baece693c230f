"""
Time utilities for the allocator governance service.

Conventions:
- Domain checkpoints and instruction timestamps: epoch milliseconds (int)
- Event envelopes: timezone-aware UTC datetimes
- Ingested application files: ISO-8601 "zulu" strings (e.g. 2021-01-01T00:00:00.000Z)
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional


UTC = timezone.utc


def now_utc() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def now_epoch_ms() -> int:
    """Get current time as epoch milliseconds."""
    return to_epoch_ms(now_utc())


def to_epoch_ms(dt: datetime) -> int:
    """
    Convert a datetime to epoch milliseconds.

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)


def zulu_to_epoch(value: Optional[str]) -> Optional[int]:
    """
    Convert an ISO-8601 zulu timestamp string to epoch milliseconds.

    Args:
        value: Timestamp such as "2021-01-01T00:00:00.000Z". May be None or empty.

    Returns:
        Epoch milliseconds, or None when the value is absent or unparseable.
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    return to_epoch_ms(parsed)
