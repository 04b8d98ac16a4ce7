"""
Per-day attendance summaries derived from the event log.

Pairing is naive: the first clock-in of the day is matched with the first
clock-out that follows it. Several clock-in/out cycles in one day are not
added up; only the first complete pair counts.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timezone, tzinfo

from timeclock.engine.states import CLOCK_IN_TYPES, CLOCK_OUT_TYPES
from timeclock.engine.timefmt import elapsed_ms, ensure_utc, format_duration
from timeclock.store.records import AttendanceEventData


@dataclass(frozen=True)
class AttendanceSummary:
    date: date
    clock_in: str | None
    clock_out: str | None
    total_hours: str | None


def summarize_day(
    day: date,
    events: Iterable[AttendanceEventData],
    tz: tzinfo = timezone.utc,
) -> AttendanceSummary:
    """Summarise one employee's events for one calendar day."""
    ordered = sorted(events, key=lambda e: (ensure_utc(e.timestamp), e.id or 0))

    clock_in = next((e for e in ordered if e.event_type in CLOCK_IN_TYPES), None)
    clock_out = None
    if clock_in is not None:
        start = ensure_utc(clock_in.timestamp)
        clock_out = next(
            (
                e
                for e in ordered
                if e.event_type in CLOCK_OUT_TYPES and ensure_utc(e.timestamp) >= start
            ),
            None,
        )
    else:
        clock_out = next((e for e in ordered if e.event_type in CLOCK_OUT_TYPES), None)

    def _clock(ev: AttendanceEventData | None) -> str | None:
        if ev is None:
            return None
        return ensure_utc(ev.timestamp).astimezone(tz).strftime("%H:%M:%S")

    total = None
    if clock_in is not None and clock_out is not None:
        total = format_duration(elapsed_ms(ensure_utc(clock_in.timestamp), ensure_utc(clock_out.timestamp)))

    return AttendanceSummary(
        date=day,
        clock_in=_clock(clock_in),
        clock_out=_clock(clock_out),
        total_hours=total,
    )


def summarize_history(
    events: Iterable[AttendanceEventData],
    tz: tzinfo = timezone.utc,
) -> list[AttendanceSummary]:
    """Group events by local calendar day and summarise each, newest day first."""
    by_day: dict[date, list[AttendanceEventData]] = defaultdict(list)
    for ev in events:
        by_day[ensure_utc(ev.timestamp).astimezone(tz).date()].append(ev)
    return [summarize_day(day, by_day[day], tz) for day in sorted(by_day, reverse=True)]
