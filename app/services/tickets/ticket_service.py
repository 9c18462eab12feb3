from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.core.logger import logger
from app.models.tickets.ticket_model import GeneratedTicket
from app.models.trips.trip_tracker import TripTracker
from app.models.user.user import User
from app.schemas.tickets.ticket_schema import (
    EmailSearchResponse,
    TicketLookupResponse,
    TicketOut,
    TicketSearchRequest,
    TicketValidationResponse,
    TrackerTicket,
)
from app.services.trackers.trip_reader import assemble_trip_view


async def get_ticket(db: AsyncSession, ticket_id: str) -> Optional[GeneratedTicket]:
    result = await db.execute(
        select(GeneratedTicket)
        .options(selectinload(GeneratedTicket.user))
        .where(GeneratedTicket.ticket_id == ticket_id)
    )
    return result.scalar_one_or_none()


async def validate_ticket(db: AsyncSession, ticket_id: str) -> TicketValidationResponse:
    ticket = await get_ticket(db, ticket_id)
    if ticket is None:
        return TicketValidationResponse(success=True, valid=False, message="Ticket not found")
    return TicketValidationResponse(success=True, valid=True, ticket=TicketOut.model_validate(ticket))


async def tracker_ticket(db: AsyncSession, tracker: TripTracker) -> TrackerTicket:
    # Read-only view: looking a tracker up here never counts as an access
    trip = await assemble_trip_view(db, tracker.trip_id)
    return TrackerTicket(
        tracker_id=tracker.tracker_id,
        email=tracker.email,
        traveler_name=tracker.traveler_name,
        phone=tracker.phone,
        access_count=tracker.access_count,
        created_at=tracker.created_at,
        save_date=tracker.save_date,
        start_date=trip.start_date,
        start_date_formatted=trip.start_date_formatted if trip.start_date else "Not specified",
        trip=trip,
    )


async def search_by_ticket_id(db: AsyncSession, ticket_id: str) -> TicketLookupResponse:
    ticket = await get_ticket(db, ticket_id)
    if ticket is not None:
        return TicketLookupResponse(success=True, type="ticket", ticket=TicketOut.model_validate(ticket))

    # Tracker IDs are handed out as tickets too
    tracker = await db.scalar(select(TripTracker).where(TripTracker.tracker_id == ticket_id))
    if tracker is None:
        raise NotFoundError("No ticket or trip tracker found with this ID")

    info = await tracker_ticket(db, tracker)
    return TicketLookupResponse(
        success=True,
        type="trip",
        trip=info.trip,
        tracker=TrackerTicket(**info.model_dump(exclude={"trip"})),
    )


async def search_by_email(db: AsyncSession, email: str) -> EmailSearchResponse:
    email = email.strip().lower()

    tickets = await db.execute(
        select(GeneratedTicket)
        .join(User, GeneratedTicket.user_id == User.id)
        .options(selectinload(GeneratedTicket.user))
        .where(User.email == email)
        .order_by(GeneratedTicket.created_at.desc(), GeneratedTicket.id.desc())
    )
    trackers = await db.execute(
        select(TripTracker)
        .where(TripTracker.email == email)
        .order_by(TripTracker.created_at.desc(), TripTracker.id.desc())
    )

    trip_trackers: List[TrackerTicket] = []
    for tracker in trackers.scalars().all():
        trip_trackers.append(await tracker_ticket(db, tracker))

    return EmailSearchResponse(
        success=True,
        type="email_search",
        tickets=[TicketOut.model_validate(t) for t in tickets.scalars().all()],
        trip_trackers=trip_trackers,
    )


async def search(db: AsyncSession, request: TicketSearchRequest):
    if request.ticket_id:
        logger.info(f"Ticket search by id {request.ticket_id}")
        return await search_by_ticket_id(db, request.ticket_id)
    if request.email:
        return await search_by_email(db, request.email)
    raise ValidationError("Either ticketId or email must be provided", error="Missing parameters")
