"""
Attendance statuses, break kinds and event type names.

A break status carries the break kind's value, so ``Status.LUNCH.value`` is
both the status stored in the status record and the suffix used in event
types (``start_Lunch``, ``end_Lunch``, ``switchBreak_from_Lunch``).
"""

from __future__ import annotations

from enum import Enum


class BreakKind(str, Enum):
    LUNCH = "Lunch"
    BREAK1 = "Break1"
    BREAK2 = "Break2"
    SMALL_BREAK = "SmallBreak"


class Status(str, Enum):
    CLOCKED_OUT = "Clocked Out"
    WORKING = "Working"
    WORKING_IDLE = "Working Idle"
    LUNCH = BreakKind.LUNCH.value
    BREAK1 = BreakKind.BREAK1.value
    BREAK2 = BreakKind.BREAK2.value
    SMALL_BREAK = BreakKind.SMALL_BREAK.value

    @classmethod
    def on_break(cls, kind: BreakKind) -> "Status":
        return cls(kind.value)

    @property
    def break_kind(self) -> BreakKind | None:
        """The break kind for a break status, ``None`` otherwise."""
        try:
            return BreakKind(self.value)
        except ValueError:
            return None

    @property
    def is_break(self) -> bool:
        return self.break_kind is not None

    @property
    def is_clocked_in(self) -> bool:
        return self is not Status.CLOCKED_OUT

    @property
    def alerts(self) -> bool:
        """Statuses that trigger the periodic break/idle alert."""
        return self.is_break or self is Status.WORKING_IDLE


# ── Event types ─────────────────────────────────────────────────────
CLOCK_IN = "clockIn"
CLOCK_OUT = "clockOut"
IDLE_ENTER = "idleEnter"
RESUME = "resume"

# Older clients wrote snake_case clock events; summaries accept both.
CLOCK_IN_TYPES = frozenset({CLOCK_IN, "clock_in"})
CLOCK_OUT_TYPES = frozenset({CLOCK_OUT, "clock_out"})


def start_break_event(kind: BreakKind) -> str:
    return f"start_{kind.value}"


def end_break_event(kind: BreakKind) -> str:
    return f"end_{kind.value}"


def switch_break_event(from_kind: BreakKind) -> str:
    return f"switchBreak_from_{from_kind.value}"
