import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select, update

from app.models.trips.trip_tracker import TripTracker
from app.services.trackers import access_guard
from app.services.trackers.access_guard import DenialReason
from app.utils.dates import utcnow
from conftest import future, make_tracker, make_trip, past


def tracker_stub(**overrides) -> TripTracker:
    fields = dict(
        tracker_id="TRKABC1234567",
        trip_id="trip-1",
        email="ana@example.com",
        is_active=True,
        expires_at=None,
        access_count=0,
    )
    fields.update(overrides)
    return TripTracker(**fields)


async def stored_count(session, tracker_id: str) -> int:
    return await session.scalar(select(TripTracker.access_count).where(TripTracker.tracker_id == tracker_id))


class TestEvaluateAccess:
    def test_missing_tracker(self):
        assert access_guard.evaluate_access(None).reason == DenialReason.NOT_FOUND

    def test_live_tracker_without_email(self):
        decision = access_guard.evaluate_access(tracker_stub())
        assert decision.authorized

    def test_inactive_is_reported_before_email_mismatch(self):
        decision = access_guard.evaluate_access(tracker_stub(is_active=False), "someone@else.com")
        assert decision.reason == DenialReason.INACTIVE

    def test_expired_is_reported_before_email_mismatch(self):
        decision = access_guard.evaluate_access(tracker_stub(expires_at=past(minutes=1)), "someone@else.com")
        assert decision.reason == DenialReason.EXPIRED

    def test_future_expiry_is_live(self):
        assert access_guard.evaluate_access(tracker_stub(expires_at=future(days=1))).authorized

    def test_email_mismatch(self):
        decision = access_guard.evaluate_access(tracker_stub(), "someone@else.com")
        assert decision.reason == DenialReason.EMAIL_MISMATCH

    def test_email_comparison_is_exact(self):
        decision = access_guard.evaluate_access(tracker_stub(), "Ana@Example.com")
        assert decision.reason == DenialReason.EMAIL_MISMATCH

    def test_matching_email(self):
        assert access_guard.evaluate_access(tracker_stub(), "ana@example.com").authorized

    def test_expiry_is_computed_against_now(self):
        expires_at = utcnow()
        tracker = tracker_stub(expires_at=expires_at)
        assert not access_guard.is_expired(tracker, now=expires_at - timedelta(seconds=1))
        assert access_guard.is_expired(tracker, now=expires_at + timedelta(seconds=1))

    def test_naive_expiry_is_treated_as_utc(self):
        naive = (utcnow() + timedelta(hours=1)).replace(tzinfo=None)
        assert access_guard.is_live(tracker_stub(expires_at=naive))


@pytest.mark.asyncio
async def test_authorized_reads_increment_counter(db, trip):
    await make_tracker(db, trip)

    first = await access_guard.authorize(db, "TRKABC1234567")
    second = await access_guard.authorize(db, "TRKABC1234567", "ana@example.com")

    assert first.access_count == 1
    assert second.access_count == 2
    assert second.last_accessed is not None
    assert await stored_count(db, "TRKABC1234567") == 2


@pytest.mark.asyncio
async def test_denied_reads_do_not_count(db, trip):
    await make_tracker(db, trip)

    decision = await access_guard.authorize(db, "TRKABC1234567", "intruder@example.com")

    assert decision.reason == DenialReason.EMAIL_MISMATCH
    assert await stored_count(db, "TRKABC1234567") == 0


@pytest.mark.asyncio
async def test_unknown_tracker(db):
    decision = await access_guard.authorize(db, "TRKNOPE000000")
    assert decision.reason == DenialReason.NOT_FOUND


@pytest.mark.asyncio
async def test_stale_readers_do_not_lose_increments(session_factory, db, trip):
    await make_tracker(db, trip)

    async with session_factory() as first, session_factory() as second:
        # Both sessions hold the tracker as loaded before either read counted
        stale_a = await access_guard.load_tracker(first, "TRKABC1234567")
        stale_b = await access_guard.load_tracker(second, "TRKABC1234567")
        assert stale_a.access_count == stale_b.access_count == 0

        await access_guard.authorize(first, "TRKABC1234567")
        await access_guard.authorize(second, "TRKABC1234567")

    assert await stored_count(db, "TRKABC1234567") == 2


@pytest.mark.asyncio
async def test_record_access_skips_deactivated_tracker(db, trip):
    await make_tracker(db, trip)
    await db.execute(
        update(TripTracker).where(TripTracker.tracker_id == "TRKABC1234567").values(is_active=False)
    )
    await db.commit()

    assert await access_guard.record_access(db, "TRKABC1234567", utcnow()) is None
    assert await stored_count(db, "TRKABC1234567") == 0


@pytest.mark.asyncio
async def test_concurrent_reads_each_count_once(disk_session_factory):
    readers = 10
    async with disk_session_factory() as session:
        trip = await make_trip(session)
        await make_tracker(session, trip)

    async def read_once():
        async with disk_session_factory() as session:
            return await access_guard.authorize(session, "TRKABC1234567")

    decisions = await asyncio.gather(*(read_once() for _ in range(readers)))

    assert all(decision.authorized for decision in decisions)
    # Every reader sees its own post-increment value
    assert sorted(decision.access_count for decision in decisions) == list(range(1, readers + 1))
    async with disk_session_factory() as session:
        assert await stored_count(session, "TRKABC1234567") == readers
