"""
Employee administration endpoints (admin only).

Disabling or deleting an employee clocks them out if they are mid-shift.
Deleting removes the record; their attendance log is kept.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from timeclock.api.v1.deps import get_registry, get_store, require_admin, session_context
from timeclock.core.config import settings
from timeclock.core.security import get_password_hash
from timeclock.engine.runner import SessionRegistry
from timeclock.engine.summary import summarize_history
from timeclock.engine.timefmt import format_duration, parse_offset
from timeclock.schemas.attendance import (
    AttendanceEventRead,
    DailySummaryRead,
    EmployeeAttendanceResponse,
    SessionSummaryRead,
)
from timeclock.schemas.employee import DeleteResponse, EmployeeCreate, EmployeeRead, EmployeeUpdate
from timeclock.store.document_store import DocumentStore
from timeclock.store.records import EmployeeData

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[EmployeeRead])
async def list_employees(
    search: str | None = None,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> list[EmployeeData]:
    employees = await store.list_employees()
    if search:
        needle = search.strip().lower()
        employees = [
            e for e in employees if needle in e.name.lower() or needle in e.employee_id.lower()
        ]
    return employees


@router.post("", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> EmployeeData:
    if await store.get_employee(body.employee_id) is not None:
        raise HTTPException(
            status_code=400,
            detail=f"Employee ID '{body.employee_id}' already registered",
        )

    employee = await store.create_employee(
        EmployeeData(
            employee_id=body.employee_id,
            name=body.name,
            hashed_password=get_password_hash(body.password),
            is_admin=body.is_admin,
            disabled=body.disabled,
            basic_info=body.basic_info,
        )
    )
    logger.info("Created employee %s (%s)", employee.employee_id, employee.name)
    return employee


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: str,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> EmployeeData:
    employee = await store.get_employee(employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@router.put("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: str,
    body: EmployeeUpdate,
    store: DocumentStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
    _admin: EmployeeData = Depends(require_admin),
) -> EmployeeData:
    """Last write wins; there is no version check between concurrent admins."""
    fields = body.model_dump(exclude_unset=True)
    # null flags mean "leave as is"
    for flag in ("is_admin", "disabled"):
        if flag in fields and fields[flag] is None:
            del fields[flag]
    password = fields.pop("password", None)
    if password is not None:
        fields["hashed_password"] = get_password_hash(password)

    employee = await store.update_employee(employee_id, **fields)
    if employee.disabled:
        await registry.end_session(session_context(employee))
    logger.info("Updated employee %s", employee_id)
    return employee


@router.delete("/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: str,
    store: DocumentStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
    admin: EmployeeData = Depends(require_admin),
) -> DeleteResponse:
    if employee_id == admin.employee_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    employee = await store.get_employee(employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    await registry.end_session(session_context(employee))
    await store.delete_employee(employee_id)
    logger.info("Deleted employee %s", employee_id)
    return DeleteResponse(success=True, message=f"Employee '{employee_id}' deleted")


@router.get("/{employee_id}/attendance", response_model=EmployeeAttendanceResponse)
async def employee_attendance(
    employee_id: str,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> EmployeeAttendanceResponse:
    """One employee's events (newest first), per-day summaries and saved sessions."""
    employee = await store.get_employee(employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    events = await store.query_events(employee_id=employee_id)
    sessions = await store.list_summaries(employee_id)
    tz = parse_offset(settings.TIMEZONE_OFFSET)

    return EmployeeAttendanceResponse(
        employee_id=employee.employee_id,
        name=employee.name,
        records=[
            AttendanceEventRead.model_validate(ev)
            for ev in sorted(events, key=lambda e: (e.timestamp, e.id or 0), reverse=True)
        ],
        summary=[DailySummaryRead.model_validate(s) for s in summarize_history(events, tz)],
        sessions=[
            SessionSummaryRead(
                date=s.date,
                clock_in=s.clock_in,
                clock_out=s.clock_out,
                worked_time=format_duration(s.worked_ms),
                break_time=format_duration(s.break_ms),
            )
            for s in sessions
        ],
    )
