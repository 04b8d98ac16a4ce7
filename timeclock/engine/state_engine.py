"""
Attendance state engine — one instance per logged-in employee session.

States: ``Clocked Out``, ``Working``, ``Working Idle`` and one break state per
``BreakKind``. Every accepted transition appends its events to the log and
then overwrites (or, on clock-out, deletes) the employee's status record.
In-memory state only advances once all of those writes succeeded, so a
``StoreUnavailableError`` leaves the engine exactly where it was.

Rejected transitions (clock-in while working, ending a break you are not on,
...) write nothing and come back as ``TransitionResult(applied=False)``.

Timers are derived on demand from the stored instants:

* clock timer: now - clock-in
* break timer: earlier segments of the current break cycle + now - state start,
  shown while on a break or idle

Two break totals are tracked. ``cycle_break_ms`` covers the segments since
the employee last entered ``Working`` (a chain of switched breaks) and feeds
the break timer. ``accumulated_break_ms`` is the running total for the whole
session, reset at clock-in and clock-out, and ends up in the session summary.
Both are stored in the status record and restored by ``load()``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone, tzinfo

from timeclock.core.config import settings
from timeclock.core.exceptions import StoreUnavailableError
from timeclock.engine.notifier import Alert, LoggingNotifier, Notifier, deliver
from timeclock.engine.states import (
    CLOCK_IN,
    CLOCK_OUT,
    IDLE_ENTER,
    RESUME,
    BreakKind,
    Status,
    end_break_event,
    start_break_event,
    switch_break_event,
)
from timeclock.engine.timefmt import elapsed_ms, format_duration, parse_offset
from timeclock.store.document_store import DocumentStore
from timeclock.store.records import AttendanceEventData, EmployeeStatusData, SessionSummaryData

logger = logging.getLogger(__name__)

ZERO = "00:00:00"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionContext:
    """Who the engine acts for. Created at login, dropped at logout."""

    employee_id: str
    name: str
    is_admin: bool = False


@dataclass(frozen=True)
class EngineState:
    status: Status = Status.CLOCKED_OUT
    state_start_time: datetime | None = None
    clock_in_time: datetime | None = None
    accumulated_break_ms: int = 0
    cycle_break_ms: int = 0


@dataclass(frozen=True)
class TransitionResult:
    applied: bool
    status: Status
    events: tuple[str, ...] = ()
    reason: str | None = None
    summary: SessionSummaryData | None = None


@dataclass(frozen=True)
class TimerSnapshot:
    status: Status
    clock_timer: str
    break_timer: str
    clock_in_time: datetime | None
    state_start_time: datetime | None
    accumulated_break_ms: int


@dataclass(frozen=True)
class TickResult:
    timers: TimerSnapshot
    entered_idle: bool = False
    alert_sent: bool = False
    alerts: list[Alert] = field(default_factory=list)


class AttendanceEngine:
    def __init__(
        self,
        context: SessionContext,
        store: DocumentStore,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
        *,
        idle_timeout: float | None = None,
        alert_interval: float | None = None,
        idle_counts_as_break: bool | None = None,
        persist_summary: bool | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self._clock = clock
        self.idle_timeout = timedelta(
            seconds=settings.IDLE_TIMEOUT_SECONDS if idle_timeout is None else idle_timeout
        )
        self.alert_interval = timedelta(
            seconds=settings.ALERT_INTERVAL_SECONDS if alert_interval is None else alert_interval
        )
        self.idle_counts_as_break = (
            settings.IDLE_COUNTS_AS_BREAK if idle_counts_as_break is None else idle_counts_as_break
        )
        self.persist_summary = (
            settings.PERSIST_SESSION_SUMMARY if persist_summary is None else persist_summary
        )
        self.tz = tz or parse_offset(settings.TIMEZONE_OFFSET)

        self._state = EngineState()
        self._last_activity = clock()
        self._last_alert: datetime | None = None
        self._lock = asyncio.Lock()

    # ── Introspection ───────────────────────────────────────────────
    @property
    def employee_id(self) -> str:
        return self.context.employee_id

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def status(self) -> Status:
        return self._state.status

    @property
    def last_activity(self) -> datetime:
        return self._last_activity

    def timers(self, now: datetime | None = None) -> TimerSnapshot:
        now = now or self._clock()
        st = self._state
        clock_timer = format_duration(elapsed_ms(st.clock_in_time, now)) if st.clock_in_time else ZERO
        break_timer = ZERO
        if st.status.alerts and st.state_start_time is not None:
            break_timer = format_duration(st.cycle_break_ms + elapsed_ms(st.state_start_time, now))
        return TimerSnapshot(
            status=st.status,
            clock_timer=clock_timer,
            break_timer=break_timer,
            clock_in_time=st.clock_in_time,
            state_start_time=st.state_start_time,
            accumulated_break_ms=st.accumulated_break_ms,
        )

    # ── Store sync ──────────────────────────────────────────────────
    async def load(self) -> EngineState:
        """Replace in-memory state with the stored status record."""
        record = await self.store.get_status(self.employee_id)
        async with self._lock:
            if record is None:
                self._state = EngineState()
            else:
                try:
                    status = Status(record.status)
                except ValueError:
                    logger.warning(
                        "Unknown stored status %r for %s, treating as Working",
                        record.status,
                        self.employee_id,
                    )
                    status = Status.WORKING
                if status is Status.CLOCKED_OUT:
                    status = Status.WORKING
                self._state = EngineState(
                    status=status,
                    state_start_time=record.state_start_time,
                    clock_in_time=record.clock_in_time or record.state_start_time,
                    accumulated_break_ms=record.accumulated_break_ms,
                    cycle_break_ms=0 if status is Status.WORKING else record.cycle_break_ms,
                )
            self._last_activity = self._clock()
            self._last_alert = None
        return self._state

    async def _commit(self, new: EngineState, events: list[str], now: datetime) -> None:
        for event_type in events:
            await self.store.append_event(
                AttendanceEventData(employee_id=self.employee_id, event_type=event_type, timestamp=now)
            )
        if new.status is Status.CLOCKED_OUT:
            await self.store.delete_status(self.employee_id)
        else:
            await self.store.set_status(
                EmployeeStatusData(
                    employee_id=self.employee_id,
                    status=new.status.value,
                    state_start_time=new.state_start_time or now,
                    clock_in_time=new.clock_in_time,
                    accumulated_break_ms=new.accumulated_break_ms,
                    cycle_break_ms=new.cycle_break_ms,
                )
            )
        previous = self._state.status
        self._state = new
        logger.info("%s: %s -> %s %s", self.employee_id, previous.value, new.status.value, events)

    def _reject(self, reason: str) -> TransitionResult:
        logger.debug("%s: rejected in %s: %s", self.employee_id, self.status.value, reason)
        return TransitionResult(applied=False, status=self.status, reason=reason)

    def _segment_ms(self, now: datetime) -> int:
        start = self._state.state_start_time
        return max(0, elapsed_ms(start, now)) if start else 0

    # ── Transitions ─────────────────────────────────────────────────
    async def clock_in(self) -> TransitionResult:
        async with self._lock:
            if self.status is not Status.CLOCKED_OUT:
                return self._reject("already clocked in")
            now = self._clock()
            new = EngineState(status=Status.WORKING, state_start_time=now, clock_in_time=now)
            await self._commit(new, [CLOCK_IN], now)
            self._last_activity = now
            self._last_alert = None
            return TransitionResult(applied=True, status=new.status, events=(CLOCK_IN,))

    async def clock_out(self) -> TransitionResult:
        async with self._lock:
            st = self._state
            if st.status is Status.CLOCKED_OUT:
                return self._reject("already clocked out")
            now = self._clock()
            break_ms = st.accumulated_break_ms
            if st.status.is_break or (st.status is Status.WORKING_IDLE and self.idle_counts_as_break):
                break_ms += self._segment_ms(now)
            clock_in = st.clock_in_time or st.state_start_time or now

            await self._commit(EngineState(), [CLOCK_OUT], now)
            self._last_alert = None

            summary = SessionSummaryData(
                employee_id=self.employee_id,
                date=clock_in.astimezone(self.tz).date().isoformat(),
                clock_in=clock_in,
                clock_out=now,
                worked_ms=max(0, elapsed_ms(clock_in, now)),
                break_ms=break_ms,
            )
            if self.persist_summary:
                try:
                    summary = await self.store.save_summary(summary)
                except StoreUnavailableError as exc:
                    # the event log still has both ends of the session
                    logger.warning("Could not persist session summary for %s: %s", self.employee_id, exc)
            return TransitionResult(applied=True, status=Status.CLOCKED_OUT, events=(CLOCK_OUT,), summary=summary)

    async def start_break(self, kind: BreakKind) -> TransitionResult:
        async with self._lock:
            return await self._start_break(kind)

    async def _start_break(self, kind: BreakKind) -> TransitionResult:
        st = self._state
        target = Status.on_break(kind)
        if st.status is target:
            return self._reject("already on this break")
        now = self._clock()

        if st.status is Status.WORKING:
            events = [start_break_event(kind)]
            new = replace(st, status=target, state_start_time=now, cycle_break_ms=0)
        elif st.status.is_break:
            segment = self._segment_ms(now)
            events = [switch_break_event(st.status.break_kind), start_break_event(kind)]
            new = replace(
                st,
                status=target,
                state_start_time=now,
                accumulated_break_ms=st.accumulated_break_ms + segment,
                cycle_break_ms=st.cycle_break_ms + segment,
            )
        elif st.status is Status.WORKING_IDLE:
            return self._reject("resume working before starting a break")
        else:
            return self._reject("not clocked in")

        await self._commit(new, events, now)
        self._last_alert = now
        deliver(self.notifier, self._alert(now))
        return TransitionResult(applied=True, status=new.status, events=tuple(events))

    async def end_break(self, kind: BreakKind) -> TransitionResult:
        async with self._lock:
            return await self._end_break(kind)

    async def _end_break(self, kind: BreakKind) -> TransitionResult:
        st = self._state
        if st.status is not Status.on_break(kind):
            return self._reject(f"not on {kind.value}")
        now = self._clock()
        segment = self._segment_ms(now)
        new = replace(
            st,
            status=Status.WORKING,
            state_start_time=now,
            accumulated_break_ms=st.accumulated_break_ms + segment,
            cycle_break_ms=0,
        )
        events = [end_break_event(kind)]
        await self._commit(new, events, now)
        self._last_activity = now
        self._last_alert = None
        return TransitionResult(applied=True, status=new.status, events=tuple(events))

    async def toggle_break(self, kind: BreakKind) -> TransitionResult:
        """Start ``kind``, end it if already on it, or switch to it from another break."""
        async with self._lock:
            if self.status is Status.on_break(kind):
                return await self._end_break(kind)
            return await self._start_break(kind)

    async def resume(self) -> TransitionResult:
        async with self._lock:
            st = self._state
            if st.status is not Status.WORKING_IDLE:
                return self._reject("not idle")
            now = self._clock()
            accumulated = st.accumulated_break_ms
            if self.idle_counts_as_break:
                accumulated += self._segment_ms(now)
            new = replace(
                st,
                status=Status.WORKING,
                state_start_time=now,
                accumulated_break_ms=accumulated,
                cycle_break_ms=0,
            )
            await self._commit(new, [RESUME], now)
            self._last_activity = now
            self._last_alert = None
            return TransitionResult(applied=True, status=new.status, events=(RESUME,))

    # ── Idle detection & alerts ─────────────────────────────────────
    def record_activity(self, at: datetime | None = None) -> None:
        """Push the idle deadline out. Does not leave ``Working Idle``."""
        at = at or self._clock()
        if at > self._last_activity:
            self._last_activity = at

    def idle_deadline(self) -> datetime:
        return self._last_activity + self.idle_timeout

    async def _enter_idle(self, now: datetime) -> bool:
        async with self._lock:
            if self.status is not Status.WORKING or now < self.idle_deadline():
                return False
            new = replace(self._state, status=Status.WORKING_IDLE, state_start_time=now, cycle_break_ms=0)
            await self._commit(new, [IDLE_ENTER], now)
            return True

    def _alert(self, now: datetime) -> Alert:
        label = "Idle Alert" if self.status is Status.WORKING_IDLE else "Break Alert"
        return Alert(
            employee_id=self.employee_id,
            title=label,
            body=f"Status: {self.status.value}",
            at=now,
        )

    async def tick(self, now: datetime | None = None) -> TickResult:
        """Run one timer tick: idle check, due alert, fresh timers.

        Store failures while entering idle are logged and retried on the next
        tick; they are never raised from here.
        """
        now = now or self._clock()
        entered_idle = False
        if self.status is Status.WORKING and now >= self.idle_deadline():
            try:
                entered_idle = await self._enter_idle(now)
            except StoreUnavailableError as exc:
                logger.warning("Idle transition for %s failed: %s", self.employee_id, exc)

        alert_sent = False
        alerts: list[Alert] = []
        if self.status.alerts and (
            self._last_alert is None or now - self._last_alert >= self.alert_interval
        ):
            alert = self._alert(now)
            self._last_alert = now
            alert_sent = deliver(self.notifier, alert)
            alerts.append(alert)

        return TickResult(
            timers=self.timers(now),
            entered_idle=entered_idle,
            alert_sent=alert_sent,
            alerts=alerts,
        )

    # ── Read helpers ────────────────────────────────────────────────
    async def break_peers(self) -> list[str]:
        """Other employees currently on the same break as this session."""
        if not self.status.is_break:
            return []
        statuses = await self.store.list_statuses(self.status.value)
        return [s.employee_id for s in statuses if s.employee_id != self.employee_id]
