"""
Employee & Message models — administrative records.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from timeclock.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    employee_id: str = Column(String(64), primary_key=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    is_admin: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    disabled: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    basic_info: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )


class Message(Base):
    __tablename__ = "messages"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    sender: str = Column(String(200), nullable=False, default="Admin")  # type: ignore[assignment]
    message: str = Column(Text, nullable=False)  # type: ignore[assignment]
    timestamp: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
