"""gauntlet.core.time

The only time helper surface in the codebase.

Candle timestamps travel as epoch milliseconds; everything human-facing is
aware UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return an aware UTC datetime."""

    return datetime.now(tz=UTC)


def ms_to_datetime(ms: int | float) -> datetime:
    """Convert epoch milliseconds into an aware UTC datetime."""

    return datetime.fromtimestamp(float(ms) / 1000.0, tz=UTC)


def parse_dt(value: str) -> datetime:
    """Parse an ISO-8601 datetime string into an aware UTC datetime.

    Accepts a `Z` suffix, explicit offsets, and naive timestamps (assumed UTC).

    Raises:
        ValueError: if parsing fails.
    """

    v = value.strip()
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"

    dt = datetime.fromisoformat(v)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def datetime_to_ms(dt: datetime) -> int:
    """Convert a datetime into epoch milliseconds (naive values are assumed UTC)."""

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)
