"""
FastAPI dependencies — store, session registry, auth guards and engine lookup.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.core.security import decode_access_token
from timeclock.db.session import async_session_factory
from timeclock.engine.runner import SessionRegistry
from timeclock.engine.state_engine import AttendanceEngine, SessionContext
from timeclock.store.document_store import DocumentStore
from timeclock.store.records import EmployeeData

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Database session (health checks only) ───────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Store & sessions ────────────────────────────────────────────────
def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_employee(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # Read from HttpOnly Cookie
    store: DocumentStore = Depends(get_store),
) -> EmployeeData:
    """Decode JWT from Header OR Cookie, look up the employee."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        # Cookie is set as "Bearer <token>"
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    employee_id: str | None = payload.get("sub")
    if employee_id is None:
        raise credentials_exc

    employee = await store.get_employee(employee_id)
    if employee is None:
        raise credentials_exc
    return employee


async def get_current_active_employee(
    current: EmployeeData = Depends(get_current_employee),
) -> EmployeeData:
    """Reject disabled accounts."""
    if current.disabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account is disabled")
    return current


async def require_admin(
    current: EmployeeData = Depends(get_current_active_employee),
) -> EmployeeData:
    """Only allow admins to proceed."""
    if not current.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current


# ── Attendance engine ───────────────────────────────────────────────
def session_context(employee: EmployeeData) -> SessionContext:
    return SessionContext(employee_id=employee.employee_id, name=employee.name, is_admin=employee.is_admin)


async def get_engine(
    employee: EmployeeData = Depends(get_current_active_employee),
    registry: SessionRegistry = Depends(get_registry),
) -> AttendanceEngine:
    """The caller's engine; reopened from the store if the process restarted."""
    engine = registry.get(employee.employee_id)
    if engine is None:
        engine = await registry.open(session_context(employee))
    return engine
