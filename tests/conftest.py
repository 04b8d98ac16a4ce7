"""
Shared test fixtures for the Timeclock test suite.

Everything runs against an in-memory aiosqlite database shared through a
StaticPool, so the store, the app and raw sessions all see the same data.
"""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TIMEZONE_OFFSET"] = "+00:00"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from timeclock.api.v1.deps import get_db, get_registry, get_store
from timeclock.core.security import create_access_token, get_password_hash
from timeclock.db.base import Base
from timeclock.engine.runner import SessionRegistry
from timeclock.main import app
from timeclock.store.document_store import SqlDocumentStore
from timeclock.store.records import EmployeeData

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

DEFAULT_PASSWORD = "secret123"


class FakeClock:
    """Manually advanced UTC clock for engine tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> SqlDocumentStore:
    return SqlDocumentStore(TestingSessionLocal)


@pytest.fixture
def registry(store: SqlDocumentStore) -> SessionRegistry:
    return SessionRegistry(store)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def async_client(
    store: SqlDocumentStore,
    registry: SessionRegistry,
) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app and the test store."""
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_registry] = lambda: registry
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def make_employee(store: SqlDocumentStore) -> Callable[..., Awaitable[EmployeeData]]:
    """Factory: insert an employee straight into the store."""

    async def _make(
        employee_id: str = "EMP-001",
        name: str = "Test Employee",
        password: str = DEFAULT_PASSWORD,
        is_admin: bool = False,
        disabled: bool = False,
    ) -> EmployeeData:
        return await store.create_employee(
            EmployeeData(
                employee_id=employee_id,
                name=name,
                hashed_password=get_password_hash(password),
                is_admin=is_admin,
                disabled=disabled,
            )
        )

    return _make


def auth_headers(employee_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(employee_id)}"}


@pytest.fixture
async def admin_headers(make_employee) -> dict[str, str]:
    await make_employee("ADMIN-01", "Boss", is_admin=True)
    return auth_headers("ADMIN-01")


@pytest.fixture
async def employee_headers(make_employee) -> dict[str, str]:
    await make_employee("EMP-001", "Worker Bee")
    return auth_headers("EMP-001")
