from pydantic import Field
from datetime import datetime
from typing import Dict, List, Optional
from app.schemas.common import CamelModel


class Period(CamelModel):
    start: datetime
    end: datetime


class OverviewAnalytics(CamelModel):
    total_users: int
    new_users: int
    user_growth_rate: float
    total_trips: int
    completed_trips: int
    trip_completion_rate: float
    total_tickets: int
    total_trackers: int
    period: Period


class OverviewResponse(CamelModel):
    success: bool = True
    analytics: OverviewAnalytics


class RoleCount(CamelModel):
    role: str
    count: int


class UserAnalytics(CamelModel):
    total_users: int
    new_users: int
    active_users: int
    user_growth_rate: float
    role_distribution: List[RoleCount]
    period: Period


class UserAnalyticsResponse(CamelModel):
    success: bool = True
    analytics: UserAnalytics


class StatusCount(CamelModel):
    status: str
    count: int


class TripAnalytics(CamelModel):
    total_trips: int
    new_trips: int
    status_distribution: List[StatusCount]
    average_budget: float
    period: Period


class TripAnalyticsResponse(CamelModel):
    success: bool = True
    analytics: TripAnalytics


class DestinationCount(CamelModel):
    city: str
    count: int


class DestinationAnalyticsResponse(CamelModel):
    success: bool = True
    destinations: List[DestinationCount]


class TicketFeedItem(CamelModel):
    id: str
    trip_id: str
    destination: str
    traveler_name: str
    email: str
    type: str
    status: str
    created_at: datetime


class TicketAnalytics(CamelModel):
    total_tickets: int
    active_tickets: int
    completed_tickets: int
    ticket_growth_rate: float
    tickets_in_period: int
    tickets_by_type: Dict[str, int]
    usage_rate: float
    period: Period


class TicketAnalyticsResponse(CamelModel):
    success: bool = True
    analytics: TicketAnalytics
    tickets: List[TicketFeedItem]


class ProcessMetrics(CamelModel):
    status: str
    uptime: int
    uptime_formatted: str
    max_rss_mb: Optional[float] = None
    cpu_cores: Optional[int] = None


class DatabaseMetrics(CamelModel):
    status: str
    total_records: int
    tables: Dict[str, int]
    tables_count: int


class ActivityWindow(CamelModel):
    new_users: int
    new_trips: int
    new_tickets: int
    new_trackers: int
    tracker_reads: int


class SystemMetrics(CamelModel):
    system: ProcessMetrics
    database: DatabaseMetrics
    activity: Dict[str, ActivityWindow] = Field(default_factory=dict)


class SystemMetricsResponse(CamelModel):
    success: bool = True
    metrics: SystemMetrics
