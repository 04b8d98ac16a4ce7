"""Pydantic schemas for Employee records and broadcast Messages."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

_ID_RE = re.compile(r"^[A-Za-z0-9._-]{2,64}$")


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be empty")
    if len(v) > 200:
        raise ValueError("Name must not exceed 200 characters")
    return v


def _check_password(v: str) -> str:
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters")
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Password must not exceed 72 bytes")
    return v


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(BaseModel):
    employee_id: str
    name: str
    password: str
    is_admin: bool = False
    disabled: bool = False
    basic_info: str | None = None

    @field_validator("employee_id")
    @classmethod
    def _employee_id(cls, v: str) -> str:
        v = v.strip()
        if not _ID_RE.match(v):
            raise ValueError("Employee ID must be 2-64 chars (letters, digits, . _ -)")
        return v

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class EmployeeUpdate(BaseModel):
    name: str | None = None
    password: str | None = None
    is_admin: bool | None = None
    disabled: bool | None = None
    basic_info: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str:
        # only runs when the field is sent; an explicit null is rejected
        if v is None:
            raise ValueError("Name must not be empty")
        return _clean_name(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str | None) -> str | None:
        return _check_password(v) if v is not None else v


class EmployeeRead(BaseModel):
    employee_id: str
    name: str
    is_admin: bool
    disabled: bool
    basic_info: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


# ── Messages ────────────────────────────────────────────────────────
class MessageCreate(BaseModel):
    message: str
    sender: str | None = None

    @field_validator("message")
    @classmethod
    def _message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message must not be empty")
        if len(v) > 2000:
            raise ValueError("Message must not exceed 2000 characters")
        return v


class MessageRead(BaseModel):
    id: int
    sender: str
    message: str
    timestamp: datetime

    model_config = {"from_attributes": True}


# ── Generic ────────────────────────────────────────────────────────
class DeleteResponse(BaseModel):
    success: bool
    message: str
