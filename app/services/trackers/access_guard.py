"""
Read access rules for trip trackers.

A tracker is *live* when it is active and not past ``expires_at``. Expiry is
always computed from the stored timestamp, never persisted. Checks run in a
fixed order: not found, inactive, expired, email mismatch. The email check
only applies when the caller supplies an email, and compares exactly.

Every authorized read bumps ``access_count`` and ``last_accessed`` with a
single relative UPDATE so concurrent readers never lose increments.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logger import logger
from app.models.trips.trip_tracker import TripTracker
from app.utils.dates import as_utc, utcnow


class DenialReason(str, enum.Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    EMAIL_MISMATCH = "email_mismatch"


@dataclass
class AccessDecision:
    tracker: Optional[TripTracker]
    reason: Optional[DenialReason] = None
    access_count: Optional[int] = None
    last_accessed: Optional[datetime] = None

    @property
    def authorized(self) -> bool:
        return self.reason is None


def is_expired(tracker: TripTracker, now: Optional[datetime] = None) -> bool:
    expires_at = as_utc(tracker.expires_at)
    if expires_at is None:
        return False
    return (now or utcnow()) > expires_at


def is_live(tracker: TripTracker, now: Optional[datetime] = None) -> bool:
    return bool(tracker.is_active) and not is_expired(tracker, now)


def liveness_denial(tracker: Optional[TripTracker], now: Optional[datetime] = None) -> Optional[DenialReason]:
    if tracker is None:
        return DenialReason.NOT_FOUND
    if not tracker.is_active:
        return DenialReason.INACTIVE
    if is_expired(tracker, now):
        return DenialReason.EXPIRED
    return None


def email_matches(tracker: TripTracker, provided_email: Optional[str]) -> bool:
    # No email supplied means no verification requested
    return not provided_email or tracker.email == provided_email


def evaluate_access(
    tracker: Optional[TripTracker],
    provided_email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AccessDecision:
    reason = liveness_denial(tracker, now)
    if reason is None and not email_matches(tracker, provided_email):
        reason = DenialReason.EMAIL_MISMATCH
    return AccessDecision(tracker=tracker, reason=reason)


async def load_tracker(db: AsyncSession, tracker_id: str, with_trip: bool = False) -> Optional[TripTracker]:
    query = select(TripTracker).where(TripTracker.tracker_id == tracker_id)
    if with_trip:
        query = query.options(selectinload(TripTracker.trip))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def record_access(db: AsyncSession, tracker_id: str, now: datetime) -> Optional[int]:
    """Increment the counter in the database; returns None if the tracker went inactive meanwhile."""
    result = await db.execute(
        update(TripTracker)
        .where(TripTracker.tracker_id == tracker_id, TripTracker.is_active.is_(True))
        .values(access_count=TripTracker.access_count + 1, last_accessed=now)
        .returning(TripTracker.access_count)
        .execution_options(synchronize_session=False)
    )
    access_count = result.scalar_one_or_none()
    await db.commit()
    return access_count


async def authorize(
    db: AsyncSession,
    tracker_id: str,
    provided_email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AccessDecision:
    now = now or utcnow()
    tracker = await load_tracker(db, tracker_id)
    decision = evaluate_access(tracker, provided_email, now)

    if not decision.authorized:
        logger.warning(f"Tracker {tracker_id} access denied: {decision.reason.value}")
        return decision

    access_count = await record_access(db, tracker_id, now)
    if access_count is None:
        logger.warning(f"Tracker {tracker_id} deactivated during read")
        return AccessDecision(tracker=tracker, reason=DenialReason.INACTIVE)

    decision.access_count = access_count
    decision.last_accessed = now
    return decision
