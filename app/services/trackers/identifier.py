import secrets
import string
import time
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ExhaustedAttemptsError
from app.core.logger import logger
from app.models.trips.trip_tracker import TripTracker

TRACKER_PREFIX = "TRK"
RANDOM_PART_LENGTH = 6
TIME_SUFFIX_LENGTH = 4
_ALPHABET = string.ascii_uppercase + string.digits


def generate_tracker_id() -> str:
    """TRK + 6 random [A-Z0-9] + last 4 digits of the epoch milliseconds, e.g. TRKQ7X2MA4821."""
    random_part = "".join(secrets.choice(_ALPHABET) for _ in range(RANDOM_PART_LENGTH))
    time_suffix = str(int(time.time() * 1000))[-TIME_SUFFIX_LENGTH:]
    return f"{TRACKER_PREFIX}{random_part}{time_suffix}"


async def tracker_id_exists(db: AsyncSession, tracker_id: str) -> bool:
    result = await db.execute(
        select(TripTracker.id).where(TripTracker.tracker_id == tracker_id)
    )
    return result.first() is not None


async def ensure_unique_tracker_id(
    db: AsyncSession,
    max_attempts: Optional[int] = None,
    generator: Callable[[], str] = generate_tracker_id,
) -> str:
    """
    Return the first generated id that is not already stored.

    The lookup only narrows the window; the unique constraint on
    trip_trackers.tracker_id still rejects a concurrent duplicate at insert.
    """
    attempts = max_attempts if max_attempts is not None else settings.TRACKER_ID_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        candidate = generator()
        if not await tracker_id_exists(db, candidate):
            return candidate
        logger.warning(f"Tracker id collision on attempt {attempt}/{attempts}: {candidate}")

    raise ExhaustedAttemptsError(
        "Unable to generate unique tracker ID after multiple attempts"
    )


def build_share_url(base_url: str, tracker_id: str) -> str:
    return f"{base_url.rstrip('/')}/trip/{tracker_id}"
