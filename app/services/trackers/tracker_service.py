from typing import List, Optional

from fastapi import BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import AccessDeniedError, AppError, GoneError, NotFoundError
from app.core.logger import logger
from app.models.trips.trip_model import Trip
from app.models.trips.trip_tracker import TripTracker
from app.schemas.trackers.tracker_schema import (
    TrackerCreate,
    TrackerCreated,
    TrackerInfo,
    TrackerOut,
    TrackerStats,
    TrackerSummary,
    TrackerUpdate,
    TrackerValidationResponse,
    TrackerValidationTrip,
    TripView,
)
from app.services.notifications.dispatcher import NotificationDispatcher, get_notification_dispatcher
from app.services.notifications.email_service import EmailDestination, TrackerEmailData
from app.services.trackers import access_guard
from app.services.trackers.access_guard import DenialReason
from app.services.trackers.identifier import build_share_url, ensure_unique_tracker_id
from app.services.trackers.trip_reader import assemble_trip_view, get_ordered_destinations
from app.utils.dates import utcnow

TRACKER_NOT_FOUND = ("Tracker not found", "The specified trip tracker could not be found")

_VALIDATION_REASONS = {
    DenialReason.NOT_FOUND: "Tracker not found",
    DenialReason.INACTIVE: "Tracker is inactive",
    DenialReason.EXPIRED: "Tracker has expired",
}


def denial_error(reason: DenialReason) -> AppError:
    if reason == DenialReason.NOT_FOUND:
        return NotFoundError(TRACKER_NOT_FOUND[1], error=TRACKER_NOT_FOUND[0])
    if reason == DenialReason.INACTIVE:
        return GoneError("This trip tracker has been deactivated", error="Tracker inactive")
    if reason == DenialReason.EXPIRED:
        return GoneError("This trip tracker has expired", error="Tracker expired")
    return AccessDeniedError("Invalid email for this tracker")


class TrackerService:
    """
    Tracker lifecycle: Created -> Live -> (Updated -> Live) -> Deactivated.

    Expiry is observed through ``access_guard.is_expired`` and never stored.
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    async def _get_owned_tracker(self, db: AsyncSession, tracker_id: str, email: Optional[str]) -> TripTracker:
        # Ownership only: update/deactivate/stats do not look at liveness
        tracker = await access_guard.load_tracker(db, tracker_id)
        if tracker is None:
            raise denial_error(DenialReason.NOT_FOUND)
        if not access_guard.email_matches(tracker, email):
            logger.warning(f"Email mismatch on tracker {tracker_id}")
            raise denial_error(DenialReason.EMAIL_MISMATCH)
        return tracker

    async def create(
        self,
        db: AsyncSession,
        payload: TrackerCreate,
        base_url: str,
        background_tasks: BackgroundTasks,
    ) -> TrackerCreated:
        trip = await db.get(Trip, payload.trip_id)
        if trip is None:
            raise NotFoundError("The specified trip could not be found", error="Trip not found")

        tracker_id = await ensure_unique_tracker_id(db)

        # Always written: the requested start date, otherwise today
        trip.start_date = payload.start_date or utcnow().date()

        tracker = TripTracker(
            tracker_id=tracker_id,
            trip_id=trip.id,
            email=payload.email,
            traveler_name=payload.traveler_name or None,
            phone=payload.phone or None,
            save_date=payload.save_date or utcnow(),
            expires_at=payload.expires_at,
            is_active=True,
            access_count=0,
        )
        db.add(tracker)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.error(f"Tracker insert rejected for trip {payload.trip_id} ({tracker_id})", exc_info=True)
            raise AppError(
                "An error occurred while creating the trip tracker",
                error="Failed to create tracker",
            )
        await db.refresh(tracker)
        logger.info(f"Tracker {tracker_id} created for trip {trip.id}")

        destinations = await get_ordered_destinations(db, trip.id)
        self.dispatcher.enqueue(
            background_tasks,
            payload.email,
            TrackerEmailData(
                tracker_id=tracker_id,
                trip_name=trip.trip_name,
                destination=trip.destination,
                traveler_name=payload.traveler_name,
                save_date=tracker.save_date,
                destinations=[EmailDestination(name=d.name, city=d.city) for d in destinations],
            ),
        )

        return TrackerCreated(
            **TrackerOut.model_validate(tracker).model_dump(),
            trip_name=trip.trip_name,
            destination=trip.destination,
            share_url=build_share_url(base_url, tracker_id),
        )

    async def read(self, db: AsyncSession, tracker_id: str, email: Optional[str] = None) -> TripView:
        decision = await access_guard.authorize(db, tracker_id, email)
        if not decision.authorized:
            raise denial_error(decision.reason)

        tracker = decision.tracker
        view = await assemble_trip_view(db, tracker.trip_id)
        view.tracker_info = TrackerInfo(
            tracker_id=tracker.tracker_id,
            email=tracker.email,
            traveler_name=tracker.traveler_name,
            phone=tracker.phone,
            access_count=decision.access_count,
            created_at=tracker.created_at,
            save_date=tracker.save_date,
            last_accessed=decision.last_accessed,
            start_date_formatted=view.start_date_formatted,
        )
        return view

    async def list_by_email(self, db: AsyncSession, email: str, base_url: str) -> List[TrackerSummary]:
        result = await db.execute(
            select(TripTracker)
            .options(selectinload(TripTracker.trip))
            .where(TripTracker.email == email.strip().lower(), TripTracker.is_active.is_(True))
            .order_by(TripTracker.created_at.desc(), TripTracker.id.desc())
        )
        return [
            TrackerSummary(
                tracker_id=t.tracker_id,
                trip_name=t.trip.trip_name,
                destination=t.trip.destination,
                start_date=t.trip.start_date,
                end_date=t.trip.end_date,
                traveler_name=t.traveler_name,
                access_count=t.access_count,
                created_at=t.created_at,
                share_url=build_share_url(base_url, t.tracker_id),
            )
            for t in result.scalars().all()
        ]

    async def update(
        self,
        db: AsyncSession,
        tracker_id: str,
        patch: TrackerUpdate,
        email: Optional[str] = None,
    ) -> TrackerOut:
        tracker = await self._get_owned_tracker(db, tracker_id, email)

        changes = patch.model_dump(include=patch.model_fields_set)
        for key, value in changes.items():
            setattr(tracker, key, value)

        await db.commit()
        await db.refresh(tracker)
        logger.info(f"Tracker {tracker_id} updated: {sorted(changes)}")
        return TrackerOut.model_validate(tracker)

    async def deactivate(self, db: AsyncSession, tracker_id: str, email: Optional[str] = None) -> None:
        tracker = await self._get_owned_tracker(db, tracker_id, email)
        tracker.is_active = False
        await db.commit()
        logger.info(f"Tracker {tracker_id} deactivated")

    async def validate(self, db: AsyncSession, tracker_id: str) -> TrackerValidationResponse:
        tracker = await access_guard.load_tracker(db, tracker_id, with_trip=True)
        reason = access_guard.liveness_denial(tracker)
        if reason is not None:
            return TrackerValidationResponse(success=False, valid=False, reason=_VALIDATION_REASONS[reason])

        return TrackerValidationResponse(
            success=True,
            valid=True,
            tracker=TrackerValidationTrip(
                tracker_id=tracker.tracker_id,
                trip_name=tracker.trip.trip_name,
                destination=tracker.trip.destination,
            ),
        )

    async def stats(self, db: AsyncSession, tracker_id: str, email: Optional[str] = None) -> TrackerStats:
        tracker = await self._get_owned_tracker(db, tracker_id, email)
        return TrackerStats(
            tracker_id=tracker.tracker_id,
            access_count=tracker.access_count,
            last_accessed=tracker.last_accessed,
            created_at=tracker.created_at,
            is_active=tracker.is_active,
            is_expired=access_guard.is_expired(tracker),
            expires_at=tracker.expires_at,
        )


async def get_tracker_service(
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
) -> TrackerService:
    return TrackerService(dispatcher)
