"""
Document store — the only thing the attendance engine talks to.

``DocumentStore`` is the contract: keyed status records, an append-only
event collection, administrative records, and live collection subscriptions.
``SqlDocumentStore`` implements it on async SQLAlchemy sessions.

Every call is bounded by ``STORE_TIMEOUT_SECONDS``. Driver errors, timeouts
and connection failures are re-raised as ``StoreUnavailableError``; nothing
is retried here. The status write and the event append are separate
transactions, there is no cross-record atomicity.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeclock.core.config import settings
from timeclock.core.exceptions import ConflictError, NotFoundError, StoreUnavailableError
from timeclock.engine.timefmt import ensure_utc
from timeclock.models.attendance import AttendanceEvent, AttendanceSummaryRecord, EmployeeStatusRecord
from timeclock.models.employee import Employee, Message
from timeclock.store.records import (
    AttendanceEventData,
    EmployeeData,
    EmployeeStatusData,
    MessageData,
    SessionSummaryData,
)
from timeclock.store.subscription import ChangeFeed, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_COLLECTION = "employee_status"
EVENTS_COLLECTION = "attendance"
EMPLOYEES_COLLECTION = "employees"
MESSAGES_COLLECTION = "messages"

_EMPLOYEE_FIELDS = {"name", "hashed_password", "is_admin", "disabled", "basic_info"}


class DocumentStore(Protocol):
    # ── Status records ──────────────────────────────────────────────
    async def get_status(self, employee_id: str) -> EmployeeStatusData | None: ...

    async def set_status(self, status: EmployeeStatusData) -> None: ...

    async def delete_status(self, employee_id: str) -> None: ...

    async def list_statuses(self, status: str | None = None) -> list[EmployeeStatusData]: ...

    # ── Event log ───────────────────────────────────────────────────
    async def append_event(self, event: AttendanceEventData) -> AttendanceEventData: ...

    async def query_events(
        self,
        employee_id: str | None = None,
        event_type: str | None = None,
    ) -> list[AttendanceEventData]: ...

    # ── Session summaries (cache) ───────────────────────────────────
    async def save_summary(self, summary: SessionSummaryData) -> SessionSummaryData: ...

    async def list_summaries(self, employee_id: str) -> list[SessionSummaryData]: ...

    # ── Employees ───────────────────────────────────────────────────
    async def get_employee(self, employee_id: str) -> EmployeeData | None: ...

    async def list_employees(self) -> list[EmployeeData]: ...

    async def create_employee(self, employee: EmployeeData) -> EmployeeData: ...

    async def update_employee(self, employee_id: str, **fields: Any) -> EmployeeData: ...

    async def delete_employee(self, employee_id: str) -> None: ...

    # ── Messages ────────────────────────────────────────────────────
    async def add_message(self, message: MessageData) -> MessageData: ...

    async def list_messages(self) -> list[MessageData]: ...

    # ── Live queries ────────────────────────────────────────────────
    def subscribe_collection(self, name: str) -> Subscription: ...


# ── Row → record conversion ─────────────────────────────────────────
def _status_data(row: EmployeeStatusRecord) -> EmployeeStatusData:
    return EmployeeStatusData(
        employee_id=row.employee_id,
        status=row.status,
        state_start_time=ensure_utc(row.state_start_time),
        clock_in_time=ensure_utc(row.clock_in_time) if row.clock_in_time else None,
        accumulated_break_ms=row.accumulated_break_ms or 0,
        cycle_break_ms=row.cycle_break_ms or 0,
    )


def _event_data(row: AttendanceEvent) -> AttendanceEventData:
    return AttendanceEventData(
        id=row.id,
        employee_id=row.employee_id,
        event_type=row.event_type,
        timestamp=ensure_utc(row.timestamp),
    )


def _employee_data(row: Employee) -> EmployeeData:
    return EmployeeData(
        employee_id=row.employee_id,
        name=row.name,
        hashed_password=row.hashed_password,
        is_admin=bool(row.is_admin),
        disabled=bool(row.disabled),
        basic_info=row.basic_info,
        created_at=ensure_utc(row.created_at) if row.created_at else None,
    )


def _message_data(row: Message) -> MessageData:
    return MessageData(
        id=row.id,
        sender=row.sender,
        message=row.message,
        timestamp=ensure_utc(row.timestamp),
    )


def _summary_data(row: AttendanceSummaryRecord) -> SessionSummaryData:
    return SessionSummaryData(
        id=row.id,
        employee_id=row.employee_id,
        date=row.date,
        clock_in=ensure_utc(row.clock_in),
        clock_out=ensure_utc(row.clock_out),
        worked_ms=row.worked_ms,
        break_ms=row.break_ms,
    )


class SqlDocumentStore:
    """``DocumentStore`` backed by SQLAlchemy ``AsyncSession`` instances."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed | None = None,
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.feed = feed or ChangeFeed()
        self._timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout

    async def _run(self, op: str, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _with_session() -> T:
            async with self._session_factory() as session:
                return await fn(session)

        try:
            return await asyncio.wait_for(_with_session(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Store %s timed out after %.1fs", op, self._timeout)
            raise StoreUnavailableError(f"{op} timed out") from exc
        except IntegrityError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Store %s failed: %s", op, exc)
            raise StoreUnavailableError(f"{op} failed") from exc

    # ── Status records ──────────────────────────────────────────────
    async def get_status(self, employee_id: str) -> EmployeeStatusData | None:
        async def _op(session: AsyncSession) -> EmployeeStatusData | None:
            row = await session.get(EmployeeStatusRecord, employee_id)
            return _status_data(row) if row else None

        return await self._run("get_status", _op)

    async def set_status(self, status: EmployeeStatusData) -> None:
        async def _op(session: AsyncSession) -> None:
            await session.merge(
                EmployeeStatusRecord(
                    employee_id=status.employee_id,
                    status=status.status,
                    state_start_time=status.state_start_time,
                    clock_in_time=status.clock_in_time,
                    accumulated_break_ms=status.accumulated_break_ms,
                    cycle_break_ms=status.cycle_break_ms,
                )
            )
            await session.commit()

        await self._run("set_status", _op)
        self.feed.publish(STATUS_COLLECTION)

    async def delete_status(self, employee_id: str) -> None:
        async def _op(session: AsyncSession) -> None:
            await session.execute(
                delete(EmployeeStatusRecord).where(EmployeeStatusRecord.employee_id == employee_id)
            )
            await session.commit()

        await self._run("delete_status", _op)
        self.feed.publish(STATUS_COLLECTION)

    async def list_statuses(self, status: str | None = None) -> list[EmployeeStatusData]:
        async def _op(session: AsyncSession) -> list[EmployeeStatusData]:
            query = select(EmployeeStatusRecord).order_by(EmployeeStatusRecord.employee_id)
            if status is not None:
                query = query.where(EmployeeStatusRecord.status == status)
            result = await session.execute(query)
            return [_status_data(r) for r in result.scalars().all()]

        return await self._run("list_statuses", _op)

    # ── Event log ───────────────────────────────────────────────────
    async def append_event(self, event: AttendanceEventData) -> AttendanceEventData:
        async def _op(session: AsyncSession) -> AttendanceEventData:
            row = AttendanceEvent(
                employee_id=event.employee_id,
                event_type=event.event_type,
                timestamp=event.timestamp,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _event_data(row)

        stored = await self._run("append_event", _op)
        self.feed.publish(EVENTS_COLLECTION)
        return stored

    async def query_events(
        self,
        employee_id: str | None = None,
        event_type: str | None = None,
    ) -> list[AttendanceEventData]:
        async def _op(session: AsyncSession) -> list[AttendanceEventData]:
            query = select(AttendanceEvent).order_by(AttendanceEvent.id.asc())
            if employee_id is not None:
                query = query.where(AttendanceEvent.employee_id == employee_id)
            if event_type is not None:
                query = query.where(AttendanceEvent.event_type == event_type)
            result = await session.execute(query)
            return [_event_data(r) for r in result.scalars().all()]

        return await self._run("query_events", _op)

    # ── Session summaries ───────────────────────────────────────────
    async def save_summary(self, summary: SessionSummaryData) -> SessionSummaryData:
        async def _op(session: AsyncSession) -> SessionSummaryData:
            row = AttendanceSummaryRecord(
                employee_id=summary.employee_id,
                date=summary.date,
                clock_in=summary.clock_in,
                clock_out=summary.clock_out,
                worked_ms=summary.worked_ms,
                break_ms=summary.break_ms,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _summary_data(row)

        return await self._run("save_summary", _op)

    async def list_summaries(self, employee_id: str) -> list[SessionSummaryData]:
        async def _op(session: AsyncSession) -> list[SessionSummaryData]:
            result = await session.execute(
                select(AttendanceSummaryRecord)
                .where(AttendanceSummaryRecord.employee_id == employee_id)
                .order_by(AttendanceSummaryRecord.clock_in.desc())
            )
            return [_summary_data(r) for r in result.scalars().all()]

        return await self._run("list_summaries", _op)

    # ── Employees ───────────────────────────────────────────────────
    async def get_employee(self, employee_id: str) -> EmployeeData | None:
        async def _op(session: AsyncSession) -> EmployeeData | None:
            row = await session.get(Employee, employee_id)
            return _employee_data(row) if row else None

        return await self._run("get_employee", _op)

    async def list_employees(self) -> list[EmployeeData]:
        async def _op(session: AsyncSession) -> list[EmployeeData]:
            result = await session.execute(select(Employee).order_by(Employee.name))
            return [_employee_data(r) for r in result.scalars().all()]

        return await self._run("list_employees", _op)

    async def create_employee(self, employee: EmployeeData) -> EmployeeData:
        async def _op(session: AsyncSession) -> EmployeeData:
            row = Employee(
                employee_id=employee.employee_id,
                name=employee.name,
                hashed_password=employee.hashed_password,
                is_admin=employee.is_admin,
                disabled=employee.disabled,
                basic_info=employee.basic_info,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _employee_data(row)

        try:
            created = await self._run("create_employee", _op)
        except IntegrityError as exc:
            raise ConflictError(f"Employee ID '{employee.employee_id}' already exists") from exc
        self.feed.publish(EMPLOYEES_COLLECTION)
        return created

    async def update_employee(self, employee_id: str, **fields: Any) -> EmployeeData:
        unknown = set(fields) - _EMPLOYEE_FIELDS
        if unknown:
            raise ValueError(f"Unknown employee fields: {sorted(unknown)}")

        async def _op(session: AsyncSession) -> EmployeeData | None:
            row = await session.get(Employee, employee_id)
            if row is None:
                return None
            for field, value in fields.items():
                setattr(row, field, value)
            await session.commit()
            await session.refresh(row)
            return _employee_data(row)

        try:
            updated = await self._run("update_employee", _op)
        except IntegrityError as exc:
            raise ConflictError(f"Employee '{employee_id}' update violates a constraint") from exc
        if updated is None:
            raise NotFoundError(f"Employee '{employee_id}' not found")
        self.feed.publish(EMPLOYEES_COLLECTION)
        return updated

    async def delete_employee(self, employee_id: str) -> None:
        async def _op(session: AsyncSession) -> bool:
            result = await session.execute(delete(Employee).where(Employee.employee_id == employee_id))
            await session.commit()
            return bool(result.rowcount)

        if not await self._run("delete_employee", _op):
            raise NotFoundError(f"Employee '{employee_id}' not found")
        self.feed.publish(EMPLOYEES_COLLECTION)

    # ── Messages ────────────────────────────────────────────────────
    async def add_message(self, message: MessageData) -> MessageData:
        async def _op(session: AsyncSession) -> MessageData:
            row = Message(sender=message.sender, message=message.message, timestamp=message.timestamp)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _message_data(row)

        stored = await self._run("add_message", _op)
        self.feed.publish(MESSAGES_COLLECTION)
        return stored

    async def list_messages(self) -> list[MessageData]:
        async def _op(session: AsyncSession) -> list[MessageData]:
            result = await session.execute(
                select(Message).order_by(Message.timestamp.desc(), Message.id.desc())
            )
            return [_message_data(r) for r in result.scalars().all()]

        return await self._run("list_messages", _op)

    # ── Live queries ────────────────────────────────────────────────
    def subscribe_collection(self, name: str) -> Subscription:
        loaders: dict[str, Callable[[], Awaitable[list[Any]]]] = {
            STATUS_COLLECTION: self.list_statuses,
            EVENTS_COLLECTION: self.query_events,
            EMPLOYEES_COLLECTION: self.list_employees,
            MESSAGES_COLLECTION: self.list_messages,
        }
        if name not in loaders:
            raise ValueError(f"Unknown collection: {name}")
        return Subscription(name, self.feed, loaders[name])
