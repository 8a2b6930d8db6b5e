"""Tests for the usage endpoints."""

import pytest
from httpx import AsyncClient

from cleantrack.models.disposal import Category
from cleantrack.services.ledger import Ledger


@pytest.mark.asyncio
async def test_requires_authentication(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/usage/delta", json={"delta_a": 1})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_record_usage(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    resp = await async_client.post("/api/v1/usage/records", json={"category": "b"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["event"]["category"] == "B"
    assert data["event"]["owner_id"] == worker.id
    assert data["event"]["owner_label"] == "Kim"


@pytest.mark.asyncio
async def test_record_usage_rejects_legacy_category(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    resp = await async_client.post("/api/v1/usage/records", json={"category": "LEGACY_A"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_owner_delta_for_today(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    resp = await async_client.post("/api/v1/usage/delta", json={"delta_a": 3, "delta_b": 1})
    assert resp.status_code == 200
    data = resp.json()
    assert data["day"] == "2025-03-15"
    assert (data["count_a"], data["count_b"]) == (3, 1)

    resp = await async_client.post("/api/v1/usage/delta", json={"delta_a": -5})
    data = resp.json()
    assert data["removed_a"] == 3
    assert data["count_a"] == 0


@pytest.mark.asyncio
async def test_owner_cannot_adjust_someone_else(async_client: AsyncClient, worker, other_worker, login_as):
    login_as(worker)
    resp = await async_client.post(
        "/api/v1/usage/delta", json={"delta_a": 1, "owner_id": other_worker.id}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_owner_cannot_backfill(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    resp = await async_client.post("/api/v1/usage/delta", json={"delta_a": 1, "day": "2025-03-10"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_backfills_any_owner(async_client: AsyncClient, admin_user, worker, login_as, db_session):
    login_as(admin_user)
    resp = await async_client.post(
        "/api/v1/usage/delta",
        json={"delta_a": 2, "owner_id": worker.id, "day": "2025-03-10"},
    )
    assert resp.status_code == 200
    assert resp.json()["owner_id"] == worker.id

    events = await Ledger(db_session).query(owner_id=worker.id)
    assert len(events) == 2
    assert {e.owner_label for e in events} == {"Kim"}


@pytest.mark.asyncio
async def test_admin_cannot_target_future_day(async_client: AsyncClient, admin_user, worker, login_as):
    login_as(admin_user)
    resp = await async_client.post(
        "/api/v1/usage/delta",
        json={"delta_a": 1, "owner_id": worker.id, "day": "2025-03-16"},
    )
    assert resp.status_code == 400
    assert "future" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_admin_unknown_owner(async_client: AsyncClient, admin_user, login_as):
    login_as(admin_user)
    resp = await async_client.post("/api/v1/usage/delta", json={"delta_a": 1, "owner_id": 999})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_admin_backfill_outside_calendar_range(async_client: AsyncClient, admin_user, worker, login_as):
    login_as(admin_user)
    for method, path, body in (
        ("POST", "/api/v1/usage/delta", {"delta_a": 1}),
        ("POST", "/api/v1/usage/delta", {"delta_b": -1}),
        ("PUT", "/api/v1/usage/daily-count", {"count_a": 2, "count_b": 0}),
    ):
        resp = await async_client.request(
            method, path, json={**body, "owner_id": worker.id, "day": "0001-01-01"}
        )
        assert resp.status_code == 400, body
        assert resp.json() == {"detail": "Date 0001-01-01 is out of range", "success": False}


@pytest.mark.asyncio
async def test_delta_out_of_range(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    resp = await async_client.post("/api/v1/usage/delta", json={"delta_a": 501})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_set_daily_count(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    await async_client.post("/api/v1/usage/delta", json={"delta_a": 4})
    resp = await async_client.put("/api/v1/usage/daily-count", json={"count_a": 1, "count_b": 2})
    assert resp.status_code == 200
    data = resp.json()
    assert (data["count_a"], data["count_b"]) == (1, 2)
    assert (data["removed_a"], data["added_b"]) == (3, 2)


@pytest.mark.asyncio
async def test_today_usage(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    await async_client.post("/api/v1/usage/records", json={"category": "A"})
    await async_client.post("/api/v1/usage/records", json={"category": "A"})
    resp = await async_client.get("/api/v1/usage/today")
    assert resp.status_code == 200
    assert resp.json() == {"owner_id": worker.id, "day": "2025-03-15", "count_a": 2, "count_b": 0}


@pytest.mark.asyncio
async def test_summary_is_admin_only(async_client: AsyncClient, worker, login_as):
    login_as(worker)
    resp = await async_client.get("/api/v1/usage/summary")
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_summary_totals(async_client: AsyncClient, admin_user, worker, login_as, db_session, clock):
    ledger = Ledger(db_session)
    await ledger.insert(Category.A, worker.id, "Kim", clock.now())
    await ledger.insert(Category.LEGACY_A, worker.id, "Kim", clock.now())
    await ledger.insert(Category.B, None, "관리자", clock.now())
    await db_session.commit()

    login_as(admin_user)
    resp = await async_client.get("/api/v1/usage/summary")
    assert resp.json() == {"count_a": 2, "count_b": 1, "total": 3}

    resp = await async_client.get("/api/v1/usage/summary", params={"start": "2025-03-16"})
    assert resp.json()["total"] == 0


@pytest.mark.asyncio
async def test_purge_orphans(async_client: AsyncClient, admin_user, worker, login_as, db_session, clock):
    ledger = Ledger(db_session)
    await ledger.insert(Category.A, worker.id, "Kim", clock.now())
    await ledger.insert(Category.A, 4242, "Gone", clock.now())
    await db_session.commit()

    login_as(admin_user)
    resp = await async_client.delete("/api/v1/usage/orphans")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "deleted": 1}
