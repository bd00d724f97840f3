"""Time utilities for esmetrics."""

from __future__ import annotations

from datetime import UTC as _UTC, datetime

UTC = _UTC

def utc_now() -> datetime:
    """Return an aware UTC datetime."""
    return datetime.now(tz=UTC)

def ensure_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime (naive input is assumed to be UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)

def isoformat_z(dt: datetime) -> str:
    """Return RFC3339/ISO8601 style string with 'Z' suffix for UTC datetimes.

    If dt is naive it is assumed to already represent UTC. Precision is
    truncated to milliseconds, which every date parser on the backend side
    accepts.
    """
    return ensure_utc(dt).isoformat(timespec='milliseconds').replace('+00:00', 'Z')

__all__ = ["UTC", "utc_now", "ensure_utc", "isoformat_z"]
