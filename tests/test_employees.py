"""Tests for employee CRUD endpoints."""

import pytest
from httpx import AsyncClient

from conftest import DEFAULT_PASSWORD, auth_headers

BASE = "/api/v1/employees"


async def create(client: AsyncClient, headers, employee_id: str, name: str, password: str = DEFAULT_PASSWORD, **extra):
    return await client.post(
        BASE,
        json={"employee_id": employee_id, "name": name, "password": password, **extra},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_create_employee(async_client: AsyncClient, admin_headers):
    """POST /employees should create a new employee."""
    resp = await create(async_client, admin_headers, "BOB-001", "Bob Jones", basic_info="Engineering")
    assert resp.status_code == 201
    data = resp.json()
    assert data["employee_id"] == "BOB-001"
    assert data["name"] == "Bob Jones"
    assert data["is_admin"] is False
    assert data["disabled"] is False
    assert data["basic_info"] == "Engineering"


@pytest.mark.asyncio
async def test_create_duplicate_id_rejected(async_client: AsyncClient, admin_headers):
    """Creating two employees with the same ID should fail."""
    await create(async_client, admin_headers, "DUP-001", "Emp1")
    resp = await create(async_client, admin_headers, "DUP-001", "Emp2")
    assert resp.status_code == 400
    assert "already registered" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"employee_id": "x", "name": "Short Id", "password": DEFAULT_PASSWORD},
        {"employee_id": "has space", "name": "Spacey", "password": DEFAULT_PASSWORD},
        {"employee_id": "OK-ID", "name": "   ", "password": DEFAULT_PASSWORD},
        {"employee_id": "OK-ID", "name": "Tiny Pass", "password": "123"},
        {"employee_id": "OK-ID", "name": "Huge Pass", "password": "p" * 73},
    ],
)
async def test_create_validation(async_client: AsyncClient, admin_headers, payload):
    resp = await async_client.post(BASE, json=payload, headers=admin_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_employees(async_client: AsyncClient, admin_headers):
    """GET /employees should return every employee, admins included."""
    await create(async_client, admin_headers, "LIST-001", "E1")
    await create(async_client, admin_headers, "LIST-002", "E2")
    resp = await async_client.get(BASE, headers=admin_headers)
    assert resp.status_code == 200
    ids = {e["employee_id"] for e in resp.json()}
    assert {"ADMIN-01", "LIST-001", "LIST-002"} <= ids


@pytest.mark.asyncio
async def test_search_employees(async_client: AsyncClient, admin_headers):
    await create(async_client, admin_headers, "S-001", "Alice Smith")
    await create(async_client, admin_headers, "S-002", "Bob Brown")

    resp = await async_client.get(f"{BASE}?search=alice", headers=admin_headers)
    assert [e["employee_id"] for e in resp.json()] == ["S-001"]

    resp = await async_client.get(f"{BASE}?search=s-00", headers=admin_headers)
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_get_employee_by_id(async_client: AsyncClient, admin_headers):
    await create(async_client, admin_headers, "SOLO-001", "Solo")
    resp = await async_client.get(f"{BASE}/SOLO-001", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Solo"


@pytest.mark.asyncio
async def test_get_employee_not_found(async_client: AsyncClient, admin_headers):
    """Requesting a non-existent employee should return 404."""
    resp = await async_client.get(f"{BASE}/NOPE-999", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_employee(async_client: AsyncClient, admin_headers):
    """PUT /employees/{id} should update employee details."""
    await create(async_client, admin_headers, "UPD-001", "Old Name")
    resp = await async_client.put(
        f"{BASE}/UPD-001",
        json={"name": "New Name", "basic_info": "Sales"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "New Name"
    assert data["basic_info"] == "Sales"


@pytest.mark.asyncio
async def test_update_rejects_null_name(async_client: AsyncClient, admin_headers):
    await create(async_client, admin_headers, "UPD-002", "Keeps Name")
    resp = await async_client.put(f"{BASE}/UPD-002", json={"name": None}, headers=admin_headers)
    assert resp.status_code == 422

    current = await async_client.get(f"{BASE}/UPD-002", headers=admin_headers)
    assert current.json()["name"] == "Keeps Name"


@pytest.mark.asyncio
async def test_update_null_flags_leave_them_unchanged(async_client: AsyncClient, admin_headers):
    await create(async_client, admin_headers, "UPD-003", "Flag Keeper", is_admin=True)
    resp = await async_client.put(
        f"{BASE}/UPD-003", json={"is_admin": None, "disabled": None}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["is_admin"] is True
    assert resp.json()["disabled"] is False


@pytest.mark.asyncio
async def test_update_password_allows_new_login(async_client: AsyncClient, admin_headers):
    await create(async_client, admin_headers, "PW-001", "Pat")
    await async_client.put(f"{BASE}/PW-001", json={"password": "brand-new-pass"}, headers=admin_headers)

    old = await async_client.post("/api/v1/auth/login", data={"username": "PW-001", "password": DEFAULT_PASSWORD})
    assert old.status_code == 401
    new = await async_client.post("/api/v1/auth/login", data={"username": "PW-001", "password": "brand-new-pass"})
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_update_missing_employee(async_client: AsyncClient, admin_headers):
    resp = await async_client.put(f"{BASE}/GHOST", json={"name": "Ghost"}, headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_disabling_closes_session(async_client: AsyncClient, admin_headers, make_employee, registry):
    await make_employee("EMP-001", "Worker Bee")
    await async_client.post("/api/v1/attendance/clock-in", headers=auth_headers("EMP-001"))
    assert "EMP-001" in registry

    resp = await async_client.put(f"{BASE}/EMP-001", json={"disabled": True}, headers=admin_headers)
    assert resp.json()["disabled"] is True
    assert "EMP-001" not in registry

    blocked = await async_client.get("/api/v1/attendance/me", headers=auth_headers("EMP-001"))
    assert blocked.status_code == 403


@pytest.mark.asyncio
async def test_disabling_mid_shift_clocks_out(async_client: AsyncClient, admin_headers, make_employee, store):
    await make_employee("EMP-001", "Worker Bee")
    await async_client.post("/api/v1/attendance/clock-in", headers=auth_headers("EMP-001"))
    await async_client.post("/api/v1/attendance/breaks/Lunch/start", headers=auth_headers("EMP-001"))

    await async_client.put(f"{BASE}/EMP-001", json={"disabled": True}, headers=admin_headers)

    active = await async_client.get("/api/v1/attendance/active", headers=admin_headers)
    assert active.json() == []
    assert await store.get_status("EMP-001") is None
    events = [e.event_type for e in await store.query_events(employee_id="EMP-001")]
    assert events == ["clockIn", "start_Lunch", "clockOut"]


@pytest.mark.asyncio
async def test_disabling_clocked_out_employee_writes_nothing(
    async_client: AsyncClient, admin_headers, make_employee, store
):
    await make_employee("EMP-001", "Worker Bee")
    resp = await async_client.put(f"{BASE}/EMP-001", json={"disabled": True}, headers=admin_headers)
    assert resp.status_code == 200
    assert await store.query_events(employee_id="EMP-001") == []


@pytest.mark.asyncio
async def test_delete_employee_keeps_event_log(async_client: AsyncClient, admin_headers, make_employee, store):
    await make_employee("EMP-001", "Worker Bee")
    await async_client.post("/api/v1/attendance/clock-in", headers=auth_headers("EMP-001"))

    resp = await async_client.delete(f"{BASE}/EMP-001", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert (await async_client.get(f"{BASE}/EMP-001", headers=admin_headers)).status_code == 404
    assert [e.event_type for e in await store.query_events(employee_id="EMP-001")] == ["clockIn", "clockOut"]
    assert await store.get_status("EMP-001") is None

    active = await async_client.get("/api/v1/attendance/active", headers=admin_headers)
    assert "EMP-001" not in {r["employee_id"] for r in active.json()}


@pytest.mark.asyncio
async def test_delete_missing_employee(async_client: AsyncClient, admin_headers):
    resp = await async_client.delete(f"{BASE}/GHOST", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(async_client: AsyncClient, admin_headers):
    resp = await async_client.delete(f"{BASE}/ADMIN-01", headers=admin_headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_non_admin_forbidden(async_client: AsyncClient, employee_headers):
    assert (await async_client.get(BASE, headers=employee_headers)).status_code == 403
    resp = await create(async_client, employee_headers, "SNEAKY-1", "Sneaky")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_employee_attendance_view(async_client: AsyncClient, admin_headers, make_employee):
    """Admin view bundles raw records, per-day summary and saved sessions."""
    await make_employee("EMP-001", "Worker Bee")
    headers = auth_headers("EMP-001")
    await async_client.post("/api/v1/attendance/clock-in", headers=headers)
    await async_client.post("/api/v1/attendance/breaks/Lunch/start", headers=headers)
    await async_client.post("/api/v1/attendance/clock-out", headers=headers)

    resp = await async_client.get(f"{BASE}/EMP-001/attendance", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Worker Bee"
    assert [r["event_type"] for r in data["records"]] == ["clockOut", "start_Lunch", "clockIn"]
    assert len(data["summary"]) == 1
    assert data["summary"][0]["total_hours"] is not None
    assert len(data["sessions"]) == 1
    assert data["sessions"][0]["worked_time"] == "00:00:00"


@pytest.mark.asyncio
async def test_employee_attendance_not_found(async_client: AsyncClient, admin_headers):
    resp = await async_client.get(f"{BASE}/GHOST/attendance", headers=admin_headers)
    assert resp.status_code == 404
