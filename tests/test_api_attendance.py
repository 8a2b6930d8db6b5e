"""Tests for the attendance endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_check_in_and_out(async_client: AsyncClient, worker, login_as):
    login_as(worker)

    resp = await async_client.get("/api/v1/attendance/me/status")
    assert resp.json()["status"] == "IDLE"
    assert resp.json()["latest"] is None

    resp = await async_client.post("/api/v1/attendance/check-in")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["record"]["event_type"] == "IN"

    status = (await async_client.get("/api/v1/attendance/me/status")).json()
    assert status["status"] == "WORKING"
    assert status["start_time"] is not None

    await async_client.post("/api/v1/attendance/check-out")
    status = (await async_client.get("/api/v1/attendance/me/status")).json()
    assert status["status"] == "DONE"
    assert status["latest"]["event_type"] == "OUT"


@pytest.mark.asyncio
async def test_my_history(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    await async_client.post("/api/v1/attendance/check-in")
    await async_client.post("/api/v1/attendance/check-out")

    resp = await async_client.get("/api/v1/attendance/me/history", params={"days": 3})
    assert resp.json() == [{"date": "2025-03-15", "check_ins": ["12:00"], "check_outs": ["12:00"]}]


@pytest.mark.asyncio
async def test_admin_views_are_forbidden_to_owners(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    for path in ("/attendance/board", "/attendance/matrix/2025/3", "/attendance/records"):
        resp = await async_client.get(f"/api/v1{path}")
        assert resp.status_code == 403, path
    resp = await async_client.put(
        "/api/v1/attendance/daily", json={"owner_id": worker.id, "day": "2025-03-15", "check_in": "09:00"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_board(async_client: AsyncClient, admin_user, worker, other_worker, login_as):
    login_as(admin_user)
    await async_client.post(
        "/api/v1/attendance/records",
        json={"owner_id": other_worker.id, "event_type": "in", "instant": "2025-03-15T00:05:00Z"},
    )

    resp = await async_client.get("/api/v1/attendance/board")
    assert resp.status_code == 200
    board = resp.json()
    assert board[0]["owner_name"] == "Lee"
    assert board[0]["status"] == "WORKING"
    assert {row["status"] for row in board[1:]} == {"IDLE"}
    assert len(board) == 3


@pytest.mark.asyncio
async def test_daily_upsert_and_matrix(async_client: AsyncClient, admin_user, worker, login_as):
    login_as(admin_user)
    resp = await async_client.put(
        "/api/v1/attendance/daily",
        json={"owner_id": worker.id, "day": "2025-03-03", "check_in": "09:15", "check_out": "18:00"},
    )
    assert resp.status_code == 200
    assert resp.json()["actions"] == {"IN": "created", "OUT": "created"}

    resp = await async_client.get("/api/v1/attendance/matrix/2025/3")
    data = resp.json()
    row = next(r for r in data["rows"] if r["owner_id"] == worker.id)
    assert len(row["days"]) == 31
    assert row["days"][2] == {"check_in": "09:15", "check_out": "18:00", "is_late": True}


@pytest.mark.asyncio
async def test_daily_upsert_validates_time(async_client: AsyncClient, admin_user, worker, login_as):
    login_as(admin_user)
    resp = await async_client.put(
        "/api/v1/attendance/daily",
        json={"owner_id": worker.id, "day": "2025-03-03", "check_in": "25:00"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_matrix_bad_month(async_client: AsyncClient, admin_user, login_as):
    login_as(admin_user)
    resp = await async_client.get("/api/v1/attendance/matrix/2025/0")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_record_crud(async_client: AsyncClient, admin_user, worker, login_as):
    login_as(admin_user)
    resp = await async_client.post(
        "/api/v1/attendance/records",
        json={"owner_id": worker.id, "event_type": "IN", "instant": "2025-03-14T00:00:00Z"},
    )
    assert resp.status_code == 201
    record_id = resp.json()["record"]["id"]

    resp = await async_client.patch(f"/api/v1/attendance/records/{record_id}", json={"event_type": "OUT"})
    assert resp.json()["record"]["event_type"] == "OUT"

    resp = await async_client.get("/api/v1/attendance/records", params={"owner_id": worker.id})
    assert [r["id"] for r in resp.json()] == [record_id]

    resp = await async_client.delete(f"/api/v1/attendance/records/{record_id}")
    assert resp.json()["success"] is True
    resp = await async_client.delete(f"/api/v1/attendance/records/{record_id}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_record_rejects_unknown_owner_and_type(async_client: AsyncClient, admin_user, login_as):
    login_as(admin_user)
    resp = await async_client.post("/api/v1/attendance/records", json={"owner_id": 999, "event_type": "IN"})
    assert resp.status_code == 404
    resp = await async_client.post(
        "/api/v1/attendance/records", json={"owner_id": admin_user.id, "event_type": "LUNCH"}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_out_of_range_days_are_rejected(async_client: AsyncClient, admin_user, worker, login_as):
    login_as(admin_user)
    resp = await async_client.get("/api/v1/attendance/matrix/0/1")
    assert resp.status_code == 422

    resp = await async_client.put(
        "/api/v1/attendance/daily",
        json={"owner_id": worker.id, "day": "0001-01-01", "check_in": "08:00", "check_out": None},
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "out of range" in resp.json()["detail"]
