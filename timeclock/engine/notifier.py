"""
Break / idle alert delivery.

Alerts are a side channel: a failed delivery is logged and dropped, it never
changes attendance state.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Alert:
    employee_id: str
    title: str
    body: str
    at: datetime


class Notifier(Protocol):
    def notify(self, alert: Alert) -> None: ...


class LoggingNotifier:
    """Writes alerts to the log. Used when no client channel is attached."""

    def notify(self, alert: Alert) -> None:
        logger.info("Alert for %s: %s (%s)", alert.employee_id, alert.title, alert.body)


class QueueNotifier:
    """Keeps the most recent alerts so a polling client can drain them."""

    def __init__(self, maxlen: int = 20) -> None:
        self._pending: deque[Alert] = deque(maxlen=maxlen)

    def notify(self, alert: Alert) -> None:
        self._pending.append(alert)

    def drain(self) -> list[Alert]:
        alerts = list(self._pending)
        self._pending.clear()
        return alerts


def deliver(notifier: Notifier, alert: Alert) -> bool:
    """Best-effort delivery; returns whether the notifier accepted the alert."""
    try:
        notifier.notify(alert)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Alert delivery to %s failed: %s", alert.employee_id, exc)
        return False
    return True
