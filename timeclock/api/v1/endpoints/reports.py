"""
Admin dashboards, live status feed, health and system status.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import get_current_active_employee, get_db, get_registry, get_store, require_admin
from timeclock.core.config import settings
from timeclock.engine.runner import SessionRegistry
from timeclock.engine.timefmt import elapsed_ms, format_duration
from timeclock.schemas.attendance import (
    ActiveEmployeeRead,
    AttendanceEventRead,
    HealthResponse,
    SystemStatusResponse,
)
from timeclock.store.document_store import STATUS_COLLECTION, DocumentStore
from timeclock.store.records import EmployeeData, EmployeeStatusData

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


def _active_rows(
    statuses: list[EmployeeStatusData],
    names: dict[str, str],
    now: datetime,
) -> list[ActiveEmployeeRead]:
    return [
        ActiveEmployeeRead(
            employee_id=s.employee_id,
            name=names.get(s.employee_id, s.employee_id),
            status=s.status,
            state_start_time=s.state_start_time,
            clock_in_time=s.clock_in_time,
            active_time=format_duration(elapsed_ms(s.state_start_time, now)),
        )
        for s in statuses
    ]


async def _names(store: DocumentStore) -> dict[str, str]:
    return {e.employee_id: e.name for e in await store.list_employees()}


async def active_snapshots(
    store: DocumentStore,
    snapshots: AsyncIterator[list[EmployeeStatusData]],
) -> AsyncIterator[list[ActiveEmployeeRead]]:
    """Turn status snapshots into active rows, looking names up fresh each time."""
    async for statuses in snapshots:
        yield _active_rows(statuses, await _names(store), datetime.now(timezone.utc))


# ── Active employees ────────────────────────────────────────────────
@router.get("/attendance/active", response_model=list[ActiveEmployeeRead])
async def active_employees(
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> list[ActiveEmployeeRead]:
    """Everyone currently clocked in, with time spent in their current status."""
    statuses = await store.list_statuses()
    return _active_rows(statuses, await _names(store), datetime.now(timezone.utc))


@router.get("/attendance/active/stream")
async def active_employees_stream(
    request: Request,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> StreamingResponse:
    """Server-sent events: a full active-employee snapshot on every status change."""

    async def iter_snapshots() -> AsyncIterator[str]:
        async with store.subscribe_collection(STATUS_COLLECTION) as sub:
            async for rows in active_snapshots(store, sub):
                if await request.is_disconnected():
                    break
                payload = json.dumps([r.model_dump(mode="json") for r in rows])
                yield f"event: snapshot\ndata: {payload}\n\n"
        logger.debug("Active stream closed")

    return StreamingResponse(
        iter_snapshots(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


# ── Attendance log ──────────────────────────────────────────────────
@router.get("/attendance/log", response_model=list[AttendanceEventRead])
async def attendance_log(
    employee_id: str | None = None,
    event_type: str | None = None,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> list[AttendanceEventRead]:
    """Every attendance event (optionally filtered), newest first, with employee names."""
    events = await store.query_events(employee_id=employee_id, event_type=event_type)
    names = await _names(store)
    return [
        AttendanceEventRead(
            id=ev.id,
            employee_id=ev.employee_id,
            event_type=ev.event_type,
            timestamp=ev.timestamp,
            name=names.get(ev.employee_id),
        )
        for ev in sorted(events, key=lambda e: (e.timestamp, e.id or 0), reverse=True)
    ]


# ── Health / Status ─────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: DB and Redis connectivity."""
    result = HealthResponse(db=False, redis=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        result.redis = True
    except Exception as e:
        logger.error("Health check Redis failure: %s", e)

    return result


@router.get("/status", response_model=SystemStatusResponse)
async def system_status(
    store: DocumentStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
    _employee: EmployeeData = Depends(get_current_active_employee),
) -> SystemStatusResponse:
    """Employee count, clocked-in count and open engine sessions."""
    employees = await store.list_employees()
    statuses = await store.list_statuses()
    return SystemStatusResponse(
        total_employees=sum(1 for e in employees if not e.disabled),
        active_employees=len(statuses),
        open_sessions=len(registry),
        status="operational",
    )
