"""
Timeclock — application entry point.

This is the **only** file that assembles the app. Attendance logic lives in
`engine/`, persistence in `store/`, HTTP in `api/`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from timeclock.api.v1.api import api_router
from timeclock.api.v1.endpoints.auth import limiter
from timeclock.core.config import settings
from timeclock.core.exceptions import register_exception_handlers
from timeclock.core.security import get_password_hash
from timeclock.db.base import Base
from timeclock.db.session import async_session_factory, engine
from timeclock.engine.runner import SessionRegistry, run_tick_loop

# Ensure all models are imported so metadata.create_all can see them
from timeclock.models.attendance import (  # noqa: F401
    AttendanceEvent,
    AttendanceSummaryRecord,
    EmployeeStatusRecord,
)
from timeclock.models.employee import Employee, Message  # noqa: F401
from timeclock.store.document_store import DocumentStore, SqlDocumentStore
from timeclock.store.records import EmployeeData

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_first_admin(store: DocumentStore) -> bool:
    """Create the default admin on first run. Returns whether one was created."""
    if await store.get_employee(settings.FIRST_ADMIN_ID) is not None:
        return False
    await store.create_employee(
        EmployeeData(
            employee_id=settings.FIRST_ADMIN_ID,
            name=settings.FIRST_ADMIN_NAME,
            hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
            is_admin=True,
        )
    )
    logger.info("Default admin created: %s (password: <redacted>)", settings.FIRST_ADMIN_ID)
    return True


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    await seed_first_admin(app.state.store)

    ticker = asyncio.create_task(run_tick_loop(app.state.sessions))
    logger.info("Timeclock v%s started", settings.VERSION)
    yield
    ticker.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await ticker
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Employee time & attendance with breaks and idle detection",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    store = SqlDocumentStore(async_session_factory)
    application.state.store = store
    application.state.sessions = SessionRegistry(store)

    # Rate limiting (login / refresh)
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
