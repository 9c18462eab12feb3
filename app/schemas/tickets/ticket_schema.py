from pydantic import EmailStr, Field
from typing import Any, List, Literal, Optional
from datetime import date, datetime
from app.schemas.common import CamelModel
from app.schemas.trackers.tracker_schema import TripView


class TicketOwner(CamelModel):
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class TicketOut(CamelModel):
    id: int
    ticket_id: str
    ticket_type: str
    is_used: bool
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    metadata: Optional[Any] = Field(default=None, validation_alias="ticket_metadata")
    user: Optional[TicketOwner] = None


class TicketValidationResponse(CamelModel):
    success: bool = True
    valid: bool
    message: Optional[str] = None
    ticket: Optional[TicketOut] = None


class TicketSearchRequest(CamelModel):
    ticket_id: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    query: Optional[str] = None


class TrackerTicket(CamelModel):
    """A trip tracker as it appears in ticket search results."""
    tracker_id: str
    email: str
    traveler_name: Optional[str] = None
    phone: Optional[str] = None
    access_count: int
    created_at: Optional[datetime] = None
    save_date: Optional[datetime] = None
    start_date: Optional[date] = None
    start_date_formatted: str
    trip: Optional[TripView] = None


class TicketLookupResponse(CamelModel):
    success: bool = True
    type: Literal["ticket", "trip"]
    ticket: Optional[TicketOut] = None
    trip: Optional[TripView] = None
    tracker: Optional[TrackerTicket] = None


class EmailSearchResponse(CamelModel):
    success: bool = True
    type: Literal["email_search"] = "email_search"
    tickets: List[TicketOut]
    trip_trackers: List[TrackerTicket] = Field(alias="trip_trackers")
