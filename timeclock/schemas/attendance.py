"""Pydantic schemas for attendance state, events, summaries and reports."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


# ── Current state ───────────────────────────────────────────────────
class AlertRead(BaseModel):
    title: str
    body: str
    at: datetime

    model_config = {"from_attributes": True}


class AttendanceStateResponse(BaseModel):
    employee_id: str
    name: str
    status: str
    clock_timer: str
    break_timer: str
    clock_in_time: datetime | None = None
    state_start_time: datetime | None = None
    accumulated_break_ms: int = 0
    alerts: list[AlertRead] = []


class TransitionResponse(BaseModel):
    success: bool
    applied: bool
    status: str
    events: list[str]
    reason: str | None = None
    worked_time: str | None = None  # set on clock-out
    break_time: str | None = None  # set on clock-out


class ActivityResponse(BaseModel):
    status: str
    idle_deadline: datetime


class BreakPeersResponse(BaseModel):
    status: str
    employees: list[str]


# ── History ─────────────────────────────────────────────────────────
class AttendanceEventRead(BaseModel):
    id: int | None
    employee_id: str
    event_type: str
    timestamp: datetime
    name: str | None = None  # joined from employee records

    model_config = {"from_attributes": True}


class DailySummaryRead(BaseModel):
    date: date
    clock_in: str | None
    clock_out: str | None
    total_hours: str | None

    model_config = {"from_attributes": True}


class SessionSummaryRead(BaseModel):
    date: str
    clock_in: datetime
    clock_out: datetime
    worked_time: str
    break_time: str


class EmployeeAttendanceResponse(BaseModel):
    employee_id: str
    name: str
    records: list[AttendanceEventRead]
    summary: list[DailySummaryRead]
    sessions: list[SessionSummaryRead]


# ── Admin views ─────────────────────────────────────────────────────
class ActiveEmployeeRead(BaseModel):
    employee_id: str
    name: str
    status: str
    state_start_time: datetime
    clock_in_time: datetime | None
    active_time: str


# ── Health / Status ────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
    redis: bool


class SystemStatusResponse(BaseModel):
    total_employees: int
    active_employees: int
    open_sessions: int
    status: str
