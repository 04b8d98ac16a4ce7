"""
Session registry and the cooperative tick loop.

Each logged-in employee gets exactly one ``AttendanceEngine``; a second login
for the same employee shares it. One background task ticks every open engine
once per ``TICK_SECONDS``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from timeclock.core.config import settings
from timeclock.engine.notifier import QueueNotifier
from timeclock.engine.state_engine import AttendanceEngine, SessionContext, utcnow
from timeclock.store.document_store import DocumentStore

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self._clock = clock
        self._engines: dict[str, AttendanceEngine] = {}
        self._notifiers: dict[str, QueueNotifier] = {}

    def __len__(self) -> int:
        return len(self._engines)

    def __contains__(self, employee_id: object) -> bool:
        return employee_id in self._engines

    def get(self, employee_id: str) -> AttendanceEngine | None:
        return self._engines.get(employee_id)

    def notifier(self, employee_id: str) -> QueueNotifier | None:
        return self._notifiers.get(employee_id)

    async def open(self, context: SessionContext) -> AttendanceEngine:
        """Return the employee's engine, creating and loading it on first use."""
        engine = self._engines.get(context.employee_id)
        if engine is not None:
            return engine
        notifier = QueueNotifier()
        engine = AttendanceEngine(context, self.store, notifier, clock=self._clock)
        await engine.load()
        # another request may have opened it while we were loading
        existing = self._engines.setdefault(context.employee_id, engine)
        if existing is engine:
            self._notifiers[context.employee_id] = notifier
            logger.info("Session opened for %s (%s)", context.employee_id, engine.status.value)
        return existing

    def close(self, employee_id: str) -> bool:
        self._notifiers.pop(employee_id, None)
        if self._engines.pop(employee_id, None) is None:
            return False
        logger.info("Session closed for %s", employee_id)
        return True

    async def end_session(self, context: SessionContext) -> bool:
        """Clock the employee out if they are still on the clock, then close the session.

        Used when an admin disables or deletes someone mid-shift. Returns True
        when a clock-out was written.
        """
        engine = await self.open(context)
        result = await engine.clock_out()
        self.close(context.employee_id)
        if result.applied:
            logger.info("Ended open shift for %s", context.employee_id)
        return result.applied

    async def tick_all(self) -> None:
        for employee_id, engine in list(self._engines.items()):
            try:
                await engine.tick()
            except Exception:  # noqa: BLE001
                logger.exception("Tick failed for %s", employee_id)


async def run_tick_loop(registry: SessionRegistry, interval: float | None = None) -> None:
    """Tick every open session until cancelled."""
    interval = settings.TICK_SECONDS if interval is None else interval
    logger.info("Tick loop started (every %.1fs)", interval)
    try:
        while True:
            await registry.tick_all()
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("Tick loop stopped")
        raise
