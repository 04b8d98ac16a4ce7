"""
Auth endpoints — login (OAuth2 password flow), token refresh, logout.

Logging in opens the employee's attendance session; logging out closes it.
"""

import logging

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address

from timeclock.api.v1.deps import (
    get_current_active_employee,
    get_current_employee,
    get_registry,
    get_store,
    session_context,
)
from timeclock.core.config import settings
from timeclock.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from timeclock.engine.runner import SessionRegistry
from timeclock.schemas.employee import EmployeeRead
from timeclock.schemas.token import LogoutResponse, RefreshRequest, Token
from timeclock.store.document_store import DocumentStore
from timeclock.store.records import EmployeeData

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    store: DocumentStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
) -> Token:
    """Authenticate with employee ID / password. Sets HttpOnly cookies."""
    employee = await store.get_employee(form_data.username.strip())

    if employee is None or not verify_password(form_data.password, employee.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect employee ID or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if employee.disabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is disabled",
        )

    await registry.open(session_context(employee))

    access_token = create_access_token(employee.employee_id)
    refresh_token = create_refresh_token(employee.employee_id)
    _set_auth_cookies(response, access_token, refresh_token)
    logger.info("Employee %s logged in", employee.employee_id)

    return Token(access_token=access_token, refresh_token=refresh_token)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token_endpoint(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(None, alias="refresh_token"),
    store: DocumentStore = Depends(get_store),
) -> Token:
    # Priority: Body > Cookie
    token_str = None
    if body and body.refresh_token:
        token_str = body.refresh_token
    elif refresh_token_cookie:
        token_str = refresh_token_cookie

    if not token_str:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token missing",
        )

    payload = decode_refresh_token(token_str)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    employee = await store.get_employee(str(payload.get("sub")))
    if employee is None or employee.disabled:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found or disabled",
        )

    new_access = create_access_token(employee.employee_id)
    new_refresh = create_refresh_token(employee.employee_id)
    _set_auth_cookies(response, new_access, new_refresh)

    return Token(access_token=new_access, refresh_token=new_refresh)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    employee: EmployeeData = Depends(get_current_employee),
    registry: SessionRegistry = Depends(get_registry),
) -> LogoutResponse:
    """Close the attendance session and clear auth cookies.

    Logging out does not clock the employee out; the status record stays.
    """
    registry.close(employee.employee_id)
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    logger.info("Employee %s logged out", employee.employee_id)
    return LogoutResponse(message="Logged out")


@router.get("/me", response_model=EmployeeRead)
async def read_current_employee(
    current: EmployeeData = Depends(get_current_active_employee),
) -> EmployeeData:
    """Return the profile of the logged-in employee."""
    return current
