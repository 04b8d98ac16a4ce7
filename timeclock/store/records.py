"""
Plain records exchanged with the document store.

The engine never sees ORM objects; these are detached copies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class EmployeeStatusData:
    employee_id: str
    status: str
    state_start_time: datetime
    clock_in_time: datetime | None = None
    accumulated_break_ms: int = 0
    cycle_break_ms: int = 0


@dataclass(frozen=True)
class AttendanceEventData:
    employee_id: str
    event_type: str
    timestamp: datetime
    id: int | None = None


@dataclass(frozen=True)
class EmployeeData:
    employee_id: str
    name: str
    hashed_password: str
    is_admin: bool = False
    disabled: bool = False
    basic_info: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class MessageData:
    sender: str
    message: str
    timestamp: datetime
    id: int | None = None


@dataclass(frozen=True)
class SessionSummaryData:
    employee_id: str
    date: str
    clock_in: datetime
    clock_out: datetime
    worked_ms: int
    break_ms: int = 0
    id: int | None = field(default=None, compare=False)
