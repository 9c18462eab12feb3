from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Any, List, Optional
from datetime import date, datetime
from app.schemas.common import CamelModel


def _date_from_iso(value):
    # startDate arrives as a date or a full ISO-8601 timestamp
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    if isinstance(value, datetime):
        return value.date()
    return value


# 📨 Tracker issuance request
class TrackerCreate(CamelModel):
    trip_id: str = Field(..., min_length=1, max_length=36)
    email: EmailStr
    traveler_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    save_date: Optional[datetime] = None
    start_date: Optional[date] = None
    expires_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start_date(cls, value):
        return _date_from_iso(value)


class TrackerUpdate(CamelModel):
    """Partial update: only fields present in the body are applied, empty or null clears."""
    traveler_name: Optional[str] = None
    phone: Optional[str] = None
    expires_at: Optional[datetime] = None

    @field_validator("traveler_name")
    @classmethod
    def check_traveler_name(cls, value):
        if value and not 2 <= len(value) <= 255:
            raise ValueError("Traveler name must be between 2 and 255 characters")
        return value or None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value):
        if value and len(value) > 50:
            raise ValueError("Phone number must be less than 50 characters")
        return value or None

    @field_validator("expires_at", mode="before")
    @classmethod
    def blank_expiry(cls, value):
        return None if value == "" else value


class TrackerOut(CamelModel):
    id: int
    tracker_id: str
    trip_id: str
    email: str
    traveler_name: Optional[str] = None
    phone: Optional[str] = None
    save_date: Optional[datetime] = None
    is_active: bool
    access_count: int
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TrackerCreated(TrackerOut):
    trip_name: Optional[str] = None
    destination: Optional[str] = None
    share_url: str


class TrackerCreateResponse(CamelModel):
    success: bool = True
    message: str = "Trip tracker created successfully"
    tracker: TrackerCreated


class TrackerUpdateResponse(CamelModel):
    success: bool = True
    message: str = "Tracker updated successfully"
    tracker: TrackerOut


# 🧭 Trip aggregate exposed through a tracker
class DestinationView(CamelModel):
    id: int
    destination_id: Optional[str] = None
    name: str
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    budget: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    operating_hours: Optional[str] = None
    contact_information: Optional[str] = None
    order_index: int


class RouteView(CamelModel):
    points: List[Any] = []
    distance_km: float = 0
    time_min: int = 0
    source: Optional[str] = None


class TrackerInfo(BaseModel):
    tracker_id: str
    email: str
    traveler_name: Optional[str] = None
    phone: Optional[str] = None
    access_count: int
    created_at: Optional[datetime] = None
    save_date: Optional[datetime] = None
    last_accessed: Optional[datetime] = None
    start_date_formatted: str


class TripView(CamelModel):
    id: str
    trip_name: Optional[str] = None
    destination: Optional[str] = None
    start_date: Optional[date] = None
    start_date_formatted: str
    end_date: Optional[date] = None
    budget: float = 0
    travelers: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    destinations: List[DestinationView] = []
    tracker_info: Optional[TrackerInfo] = Field(default=None, alias="tracker_info")
    route_data: Optional[RouteView] = None


class TrackerReadResponse(CamelModel):
    success: bool = True
    trip: TripView


class TrackerSummary(CamelModel):
    tracker_id: str
    trip_name: Optional[str] = None
    destination: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    traveler_name: Optional[str] = None
    access_count: int
    created_at: Optional[datetime] = None
    share_url: str


class TrackerListResponse(CamelModel):
    success: bool = True
    trackers: List[TrackerSummary]
    count: int


class TrackerValidationTrip(CamelModel):
    tracker_id: str
    trip_name: Optional[str] = None
    destination: Optional[str] = None


class TrackerValidationResponse(CamelModel):
    success: bool
    valid: bool
    reason: Optional[str] = None
    tracker: Optional[TrackerValidationTrip] = None


class TrackerStats(CamelModel):
    tracker_id: str
    access_count: int
    last_accessed: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_active: bool
    is_expired: bool
    expires_at: Optional[datetime] = None


class TrackerStatsResponse(CamelModel):
    success: bool = True
    stats: TrackerStats
