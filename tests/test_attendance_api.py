"""Tests for the employee-facing attendance endpoints."""

import pytest
from httpx import AsyncClient

from timeclock.api.v1.deps import get_store
from timeclock.core.exceptions import StoreUnavailableError
from timeclock.main import app
from conftest import auth_headers

BASE = "/api/v1/attendance"


@pytest.mark.asyncio
async def test_requires_authentication(async_client: AsyncClient):
    resp = await async_client.post(f"{BASE}/clock-in")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_disabled_employee_cannot_clock_in(async_client: AsyncClient, make_employee):
    await make_employee("EMP-OFF", "Gone", disabled=True)
    resp = await async_client.post(f"{BASE}/clock-in", headers=auth_headers("EMP-OFF"))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_initial_state_is_clocked_out(async_client: AsyncClient, employee_headers):
    resp = await async_client.get(f"{BASE}/me", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["employee_id"] == "EMP-001"
    assert data["name"] == "Worker Bee"
    assert data["status"] == "Clocked Out"
    assert data["clock_timer"] == "00:00:00"
    assert data["break_timer"] == "00:00:00"
    assert data["alerts"] == []


@pytest.mark.asyncio
async def test_clock_in_and_duplicate(async_client: AsyncClient, employee_headers):
    """Clock-in works once; the second attempt is reported but writes nothing."""
    resp = await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["applied"] is True
    assert data["status"] == "Working"
    assert data["events"] == ["clockIn"]

    again = await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    assert again.status_code == 200
    assert again.json()["applied"] is False
    assert again.json()["reason"] == "already clocked in"

    history = await async_client.get(f"{BASE}/history", headers=employee_headers)
    assert [e["event_type"] for e in history.json()] == ["clockIn"]


@pytest.mark.asyncio
async def test_break_cycle(async_client: AsyncClient, employee_headers):
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)

    start = await async_client.post(f"{BASE}/breaks/Lunch/start", headers=employee_headers)
    assert start.json()["status"] == "Lunch"
    assert start.json()["events"] == ["start_Lunch"]

    me = await async_client.get(f"{BASE}/me", headers=employee_headers)
    assert me.json()["status"] == "Lunch"
    assert [a["title"] for a in me.json()["alerts"]] == ["Break Alert"]

    switch = await async_client.post(f"{BASE}/breaks/SmallBreak/start", headers=employee_headers)
    assert switch.json()["events"] == ["switchBreak_from_Lunch", "start_SmallBreak"]

    wrong = await async_client.post(f"{BASE}/breaks/Lunch/end", headers=employee_headers)
    assert wrong.json()["applied"] is False

    end = await async_client.post(f"{BASE}/breaks/SmallBreak/end", headers=employee_headers)
    assert end.json()["status"] == "Working"
    assert end.json()["events"] == ["end_SmallBreak"]


@pytest.mark.asyncio
async def test_toggle_break(async_client: AsyncClient, employee_headers):
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)

    on = await async_client.post(f"{BASE}/breaks/Break1/toggle", headers=employee_headers)
    assert on.json()["status"] == "Break1"
    off = await async_client.post(f"{BASE}/breaks/Break1/toggle", headers=employee_headers)
    assert off.json()["status"] == "Working"


@pytest.mark.asyncio
async def test_unknown_break_kind(async_client: AsyncClient, employee_headers):
    resp = await async_client.post(f"{BASE}/breaks/Nap/start", headers=employee_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_clock_out_returns_session_totals(async_client: AsyncClient, employee_headers, store):
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    resp = await async_client.post(f"{BASE}/clock-out", headers=employee_headers)

    data = resp.json()
    assert data["applied"] is True
    assert data["status"] == "Clocked Out"
    assert data["events"] == ["clockOut"]
    assert data["worked_time"] is not None
    assert data["break_time"] == "00:00:00"
    assert await store.get_status("EMP-001") is None


@pytest.mark.asyncio
async def test_resume_when_working_is_rejected(async_client: AsyncClient, employee_headers):
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    resp = await async_client.post(f"{BASE}/resume", headers=employee_headers)
    assert resp.json()["applied"] is False
    assert resp.json()["reason"] == "not idle"


@pytest.mark.asyncio
async def test_resume_from_idle(async_client: AsyncClient, employee_headers, registry, store):
    """An engine pushed into idle can be resumed through the API."""
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    engine = registry.get("EMP-001")
    await engine.tick(engine.idle_deadline())

    me = await async_client.get(f"{BASE}/me", headers=employee_headers)
    assert me.json()["status"] == "Working Idle"

    resp = await async_client.post(f"{BASE}/resume", headers=employee_headers)
    assert resp.json()["applied"] is True
    assert resp.json()["status"] == "Working"
    assert (await store.get_status("EMP-001")).status == "Working"


@pytest.mark.asyncio
async def test_activity_heartbeat(async_client: AsyncClient, employee_headers, registry):
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    before = registry.get("EMP-001").idle_deadline()

    resp = await async_client.post(f"{BASE}/activity", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "Working"
    assert registry.get("EMP-001").idle_deadline() >= before


@pytest.mark.asyncio
async def test_break_peers(async_client: AsyncClient, make_employee):
    for eid in ("EMP-A", "EMP-B", "EMP-C"):
        await make_employee(eid, f"Name {eid}")
        await async_client.post(f"{BASE}/clock-in", headers=auth_headers(eid))
    await async_client.post(f"{BASE}/breaks/Lunch/start", headers=auth_headers("EMP-A"))
    await async_client.post(f"{BASE}/breaks/Lunch/start", headers=auth_headers("EMP-B"))

    resp = await async_client.get(f"{BASE}/break-peers", headers=auth_headers("EMP-A"))
    assert resp.json() == {"status": "Lunch", "employees": ["EMP-B"]}

    working = await async_client.get(f"{BASE}/break-peers", headers=auth_headers("EMP-C"))
    assert working.json()["employees"] == []


@pytest.mark.asyncio
async def test_history_newest_first_and_summary(async_client: AsyncClient, employee_headers):
    await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    await async_client.post(f"{BASE}/breaks/Break2/start", headers=employee_headers)
    await async_client.post(f"{BASE}/breaks/Break2/end", headers=employee_headers)
    await async_client.post(f"{BASE}/clock-out", headers=employee_headers)

    history = await async_client.get(f"{BASE}/history", headers=employee_headers)
    assert [e["event_type"] for e in history.json()] == ["clockOut", "end_Break2", "start_Break2", "clockIn"]

    summary = await async_client.get(f"{BASE}/summary", headers=employee_headers)
    days = summary.json()
    assert len(days) == 1
    assert days[0]["clock_in"] is not None
    assert days[0]["clock_out"] is not None
    assert days[0]["total_hours"] == "00:00:00"


@pytest.mark.asyncio
async def test_store_outage_returns_503(async_client: AsyncClient, employee_headers):
    class DownStore:
        def __getattr__(self, name):
            async def _fail(*_args, **_kwargs):
                raise StoreUnavailableError(f"{name} failed")

            return _fail

    app.dependency_overrides[get_store] = lambda: DownStore()
    resp = await async_client.post(f"{BASE}/clock-in", headers=employee_headers)
    assert resp.status_code == 503
    assert resp.json()["success"] is False
