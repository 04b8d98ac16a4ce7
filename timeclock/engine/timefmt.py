"""
Duration and timezone helpers shared by timers and summaries.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def format_duration(ms: float) -> str:
    """Format a millisecond span as zero-padded ``HH:MM:SS``.

    Hours are not wrapped: 100 hours renders as ``100:00:00``. Negative
    spans (clock skew between client and store) render as zero.
    """
    total_seconds = max(0, int(ms // 1000))
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a potentially-naive timestamp to UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_offset(tz_offset: str) -> timezone:
    """Turn ``+05:00`` / ``-03:30`` / ``+02`` into a fixed-offset timezone."""
    sign = 1 if tz_offset[0] == "+" else -1
    parts = tz_offset[1:].split(":")
    hours = int(parts[0])
    minutes = int(parts[1]) if len(parts) > 1 else 0
    return timezone(timedelta(hours=sign * hours, minutes=sign * minutes))
