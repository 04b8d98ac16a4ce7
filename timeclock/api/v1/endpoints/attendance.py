"""
Employee-facing attendance endpoints.

Every route acts on the caller's own engine. Rejected transitions still
return 200 with ``applied: false``; store failures become 503s.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from timeclock.api.v1.deps import get_engine, get_registry
from timeclock.engine.runner import SessionRegistry
from timeclock.engine.state_engine import AttendanceEngine, TransitionResult
from timeclock.engine.states import BreakKind
from timeclock.engine.summary import summarize_history
from timeclock.engine.timefmt import format_duration
from timeclock.schemas.attendance import (
    ActivityResponse,
    AlertRead,
    AttendanceEventRead,
    AttendanceStateResponse,
    BreakPeersResponse,
    DailySummaryRead,
    TransitionResponse,
)

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


def _transition_response(result: TransitionResult) -> TransitionResponse:
    worked = brk = None
    if result.summary is not None:
        worked = format_duration(result.summary.worked_ms)
        brk = format_duration(result.summary.break_ms)
    return TransitionResponse(
        success=True,
        applied=result.applied,
        status=result.status.value,
        events=list(result.events),
        reason=result.reason,
        worked_time=worked,
        break_time=brk,
    )


# ── Current state ───────────────────────────────────────────────────
@router.get("/me", response_model=AttendanceStateResponse)
async def current_state(
    engine: AttendanceEngine = Depends(get_engine),
    registry: SessionRegistry = Depends(get_registry),
) -> AttendanceStateResponse:
    """Status and timers for the caller. Runs one tick, so idle and alerts are current."""
    tick = await engine.tick()
    notifier = registry.notifier(engine.employee_id)
    alerts = notifier.drain() if notifier is not None else tick.alerts
    timers = tick.timers
    return AttendanceStateResponse(
        employee_id=engine.employee_id,
        name=engine.context.name,
        status=timers.status.value,
        clock_timer=timers.clock_timer,
        break_timer=timers.break_timer,
        clock_in_time=timers.clock_in_time,
        state_start_time=timers.state_start_time,
        accumulated_break_ms=timers.accumulated_break_ms,
        alerts=[AlertRead(title=a.title, body=a.body, at=a.at) for a in alerts],
    )


# ── Transitions ─────────────────────────────────────────────────────
@router.post("/clock-in", response_model=TransitionResponse)
async def clock_in(engine: AttendanceEngine = Depends(get_engine)) -> TransitionResponse:
    return _transition_response(await engine.clock_in())


@router.post("/clock-out", response_model=TransitionResponse)
async def clock_out(engine: AttendanceEngine = Depends(get_engine)) -> TransitionResponse:
    return _transition_response(await engine.clock_out())


@router.post("/breaks/{kind}/start", response_model=TransitionResponse)
async def start_break(
    kind: BreakKind,
    engine: AttendanceEngine = Depends(get_engine),
) -> TransitionResponse:
    """Start a break from Working, or switch to it from another break."""
    return _transition_response(await engine.start_break(kind))


@router.post("/breaks/{kind}/end", response_model=TransitionResponse)
async def end_break(
    kind: BreakKind,
    engine: AttendanceEngine = Depends(get_engine),
) -> TransitionResponse:
    return _transition_response(await engine.end_break(kind))


@router.post("/breaks/{kind}/toggle", response_model=TransitionResponse)
async def toggle_break(
    kind: BreakKind,
    engine: AttendanceEngine = Depends(get_engine),
) -> TransitionResponse:
    """One-button break control: start, end or switch depending on the current status."""
    return _transition_response(await engine.toggle_break(kind))


@router.post("/resume", response_model=TransitionResponse)
async def resume_working(engine: AttendanceEngine = Depends(get_engine)) -> TransitionResponse:
    return _transition_response(await engine.resume())


@router.post("/activity", response_model=ActivityResponse)
async def record_activity(engine: AttendanceEngine = Depends(get_engine)) -> ActivityResponse:
    """Client heartbeat on user input; pushes the idle deadline out."""
    engine.record_activity()
    return ActivityResponse(status=engine.status.value, idle_deadline=engine.idle_deadline())


# ── Reads ───────────────────────────────────────────────────────────
@router.get("/break-peers", response_model=BreakPeersResponse)
async def break_peers(engine: AttendanceEngine = Depends(get_engine)) -> BreakPeersResponse:
    """Other employees on the same break as the caller."""
    return BreakPeersResponse(status=engine.status.value, employees=await engine.break_peers())


@router.get("/history", response_model=list[AttendanceEventRead])
async def my_history(engine: AttendanceEngine = Depends(get_engine)) -> list[AttendanceEventRead]:
    """The caller's attendance events, newest first."""
    events = await engine.store.query_events(employee_id=engine.employee_id)
    return [
        AttendanceEventRead.model_validate(ev)
        for ev in sorted(events, key=lambda e: (e.timestamp, e.id or 0), reverse=True)
    ]


@router.get("/summary", response_model=list[DailySummaryRead])
async def my_summary(engine: AttendanceEngine = Depends(get_engine)) -> list[DailySummaryRead]:
    """Per-day clock-in / clock-out / total for the caller, newest day first."""
    events = await engine.store.query_events(employee_id=engine.employee_id)
    return [DailySummaryRead.model_validate(s) for s in summarize_history(events, engine.tz)]
