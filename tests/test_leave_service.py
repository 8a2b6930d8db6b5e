"""Tests for leave requests, decisions and balances."""

from datetime import date

import pytest

from cleantrack.core.exceptions import InvalidRequestError, NotFoundError
from cleantrack.services.leave import LeaveService


@pytest.fixture
def service(db_session, config, clock) -> LeaveService:
    return LeaveService(db_session, config, clock)


@pytest.mark.asyncio
async def test_request_starts_pending(service, worker):
    request = await service.request(worker.id, date(2025, 4, 1), date(2025, 4, 3), "  family  ")
    assert request.status == "PENDING"
    assert request.days == 3
    assert request.reason == "family"
    assert request.processed_by is None


@pytest.mark.asyncio
async def test_request_rejects_reversed_span(service, worker):
    with pytest.raises(InvalidRequestError):
        await service.request(worker.id, date(2025, 4, 3), date(2025, 4, 1))


@pytest.mark.asyncio
async def test_overlap_with_live_request_is_rejected(service, worker, other_worker, admin_user):
    first = await service.request(worker.id, date(2025, 4, 1), date(2025, 4, 3))
    with pytest.raises(InvalidRequestError, match=f"Overlaps leave request {first.id}"):
        await service.request(worker.id, date(2025, 4, 3), date(2025, 4, 5))

    # Another owner's leave does not overlap.
    await service.request(other_worker.id, date(2025, 4, 2), date(2025, 4, 2))

    # A rejected request frees its days.
    await service.decide(first.id, approved=False, admin_id=admin_user.id)
    again = await service.request(worker.id, date(2025, 4, 3), date(2025, 4, 5))
    assert again.status == "PENDING"


@pytest.mark.asyncio
async def test_decide_stamps_admin_and_time(service, worker, admin_user, clock):
    request = await service.request(worker.id, date(2025, 4, 1), date(2025, 4, 1))
    decided = await service.decide(request.id, approved=True, admin_id=admin_user.id)
    assert decided.status == "APPROVED"
    assert decided.processed_by == admin_user.id
    assert decided.processed_at == clock.now()

    # A decision can be revisited.
    decided = await service.decide(request.id, approved=False, admin_id=admin_user.id)
    assert decided.status == "REJECTED"


@pytest.mark.asyncio
async def test_decide_unknown_request(service, admin_user):
    with pytest.raises(NotFoundError):
        await service.decide(999, approved=True, admin_id=admin_user.id)


@pytest.mark.asyncio
async def test_balance_counts_only_approved_days(service, worker, admin_user):
    approved = await service.request(worker.id, date(2025, 4, 1), date(2025, 4, 3))
    rejected = await service.request(worker.id, date(2025, 5, 1), date(2025, 5, 2))
    await service.request(worker.id, date(2025, 6, 1), date(2025, 6, 1))
    await service.decide(approved.id, approved=True, admin_id=admin_user.id)
    await service.decide(rejected.id, approved=False, admin_id=admin_user.id)

    balance = await service.balance(worker)
    assert (balance.total, balance.used, balance.remaining) == (15, 3, 12)


@pytest.mark.asyncio
async def test_balance_uses_owner_allowance(service, worker, admin_user, db_session):
    worker.total_leaves = 2
    await db_session.commit()
    request = await service.request(worker.id, date(2025, 4, 1), date(2025, 4, 3))
    await service.decide(request.id, approved=True, admin_id=admin_user.id)

    balance = await service.balance(worker)
    assert (balance.total, balance.used, balance.remaining) == (2, 3, -1)


@pytest.mark.asyncio
async def test_list_filters(service, worker, other_worker, admin_user):
    a = await service.request(worker.id, date(2025, 4, 1), date(2025, 4, 1))
    b = await service.request(worker.id, date(2025, 5, 1), date(2025, 5, 1))
    c = await service.request(other_worker.id, date(2025, 4, 10), date(2025, 4, 10))
    await service.decide(c.id, approved=True, admin_id=admin_user.id)

    assert [r.id for r in await service.list_requests(owner_id=worker.id)] == [b.id, a.id]
    assert [r.id for r in await service.list_requests(status="APPROVED")] == [c.id]
    with pytest.raises(InvalidRequestError):
        await service.list_requests(status="MAYBE")


@pytest.mark.asyncio
async def test_on_leave_defaults_to_today(service, worker, other_worker, admin_user):
    # Frozen clock: 2025-03-15 local.
    covering = await service.request(worker.id, date(2025, 3, 14), date(2025, 3, 16))
    pending = await service.request(other_worker.id, date(2025, 3, 15), date(2025, 3, 15))
    await service.decide(covering.id, approved=True, admin_id=admin_user.id)

    assert [r.id for r in await service.on_leave()] == [covering.id]
    assert await service.on_leave(date(2025, 3, 17)) == []
    assert pending.status == "PENDING"
