"""
Attendance models — current status record, event log and session summaries.

``attendance`` is append-only; rows are never updated or deleted.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String

from timeclock.db.base import Base


class EmployeeStatusRecord(Base):
    __tablename__ = "employee_status"

    employee_id: str = Column(String(64), primary_key=True)  # type: ignore[assignment]
    status: str = Column(String(32), nullable=False)  # type: ignore[assignment]
    state_start_time: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    clock_in_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    accumulated_break_ms: int = Column(BigInteger, nullable=False, default=0)  # type: ignore[assignment]
    cycle_break_ms: int = Column(BigInteger, nullable=False, default=0)  # type: ignore[assignment]


class AttendanceEvent(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        Index("ix_attendance_employee_timestamp", "employee_id", "timestamp"),
    )

    id: int = Column(Integer, primary_key=True, autoincrement=True)  # type: ignore[assignment]
    employee_id: str = Column(String(64), nullable=False, index=True)  # type: ignore[assignment]
    event_type: str = Column(String(64), nullable=False, index=True)  # type: ignore[assignment]
    # clockIn | clockOut | idleEnter | resume | start_<kind> | end_<kind> | switchBreak_from_<kind>
    timestamp: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class AttendanceSummaryRecord(Base):
    __tablename__ = "attendance_summaries"
    __table_args__ = (Index("ix_summary_employee_date", "employee_id", "date"),)

    id: int = Column(Integer, primary_key=True, autoincrement=True)  # type: ignore[assignment]
    employee_id: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD
    clock_in: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    clock_out: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    worked_ms: int = Column(BigInteger, nullable=False)  # type: ignore[assignment]
    break_ms: int = Column(BigInteger, nullable=False, default=0)  # type: ignore[assignment]
