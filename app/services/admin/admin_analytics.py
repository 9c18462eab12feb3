import os
import time
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import Base
from app.models.user.user import User
from app.models.trips.trip_model import Trip, TripStatus
from app.models.trips.trip_destination import TripDestination
from app.models.trips.trip_tracker import TripTracker
from app.models.tickets.ticket_model import GeneratedTicket
from app.utils.dates import as_utc, utcnow

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

PROCESS_STARTED = time.monotonic()
DEFAULT_PERIOD_DAYS = 30
TICKET_FEED_SIZE = 15


def resolve_period(start: Optional[datetime], end: Optional[datetime]) -> Tuple[datetime, datetime]:
    """Defaults to the last 30 days ending now."""
    end = as_utc(end) if end else utcnow()
    start = as_utc(start) if start else end - timedelta(days=DEFAULT_PERIOD_DAYS)
    return start, end


def percentage(part: int, whole: int, digits: int = 2) -> float:
    return round(part / whole * 100, digits) if whole else 0.0


def format_uptime(seconds: float) -> str:
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


async def count(db: AsyncSession, model, *conditions) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0


def ticket_destination(metadata) -> str:
    if isinstance(metadata, dict):
        return metadata.get("destination") or metadata.get("query") or "Unknown"
    return "Unknown"


class AdminAnalyticsService:
    @staticmethod
    async def get_overview(db: AsyncSession, start: datetime, end: datetime) -> dict:
        total_users = await count(db, User)
        new_users = await count(db, User, User.created_at >= start, User.created_at <= end)
        total_trips = await count(db, Trip)
        completed_trips = await count(db, Trip, Trip.status == TripStatus.completed)

        return {
            "total_users": total_users,
            "new_users": new_users,
            "user_growth_rate": percentage(new_users, total_users),
            "total_trips": total_trips,
            "completed_trips": completed_trips,
            "trip_completion_rate": percentage(completed_trips, total_trips),
            "total_tickets": await count(db, GeneratedTicket),
            "total_trackers": await count(db, TripTracker),
            "period": {"start": start, "end": end},
        }

    @staticmethod
    async def get_user_analytics(db: AsyncSession, start: datetime, end: datetime) -> dict:
        total_users = await count(db, User)
        new_users = await count(db, User, User.created_at >= start, User.created_at <= end)

        # Active users: planned at least one trip within the period
        active_users = await db.scalar(
            select(func.count(func.distinct(Trip.user_id)))
            .where(Trip.user_id.is_not(None), Trip.created_at >= start, Trip.created_at <= end)
        ) or 0

        roles = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))

        return {
            "total_users": total_users,
            "new_users": new_users,
            "active_users": active_users,
            "user_growth_rate": percentage(new_users, total_users),
            "role_distribution": [
                {"role": role.value if role else "unknown", "count": n} for role, n in roles.all()
            ],
            "period": {"start": start, "end": end},
        }

    @staticmethod
    async def get_trip_analytics(db: AsyncSession, start: datetime, end: datetime) -> dict:
        statuses = await db.execute(select(Trip.status, func.count(Trip.id)).group_by(Trip.status))
        average_budget = await db.scalar(select(func.avg(Trip.budget)).where(Trip.budget.is_not(None)))

        return {
            "total_trips": await count(db, Trip),
            "new_trips": await count(db, Trip, Trip.created_at >= start, Trip.created_at <= end),
            "status_distribution": [
                {"status": status.value if status else "unknown", "count": n} for status, n in statuses.all()
            ],
            "average_budget": round(float(average_budget), 2) if average_budget else 0.0,
            "period": {"start": start, "end": end},
        }

    @staticmethod
    async def get_popular_destinations(db: AsyncSession, limit: int = 10) -> list[dict]:
        visits = func.count(TripDestination.id)
        result = await db.execute(
            select(TripDestination.city, visits)
            .where(TripDestination.city.is_not(None))
            .group_by(TripDestination.city)
            .order_by(visits.desc(), TripDestination.city.asc())
            .limit(limit)
        )
        return [{"city": city, "count": n} for city, n in result.all()]

    @staticmethod
    async def get_ticket_analytics(db: AsyncSession, start: datetime, end: datetime) -> dict:
        total_tickets = await count(db, GeneratedTicket)
        used_tickets = await count(db, GeneratedTicket, GeneratedTicket.is_used.is_(True))
        tickets_in_period = await count(
            db, GeneratedTicket, GeneratedTicket.created_at >= start, GeneratedTicket.created_at <= end
        )

        # Growth compares against the same-length window right before the period
        previous_start = start - (end - start)
        previous_tickets = await count(
            db, GeneratedTicket, GeneratedTicket.created_at >= previous_start, GeneratedTicket.created_at < start
        )
        if previous_tickets:
            growth = round((tickets_in_period - previous_tickets) / previous_tickets * 100, 2)
        else:
            growth = 100.0 if tickets_in_period else 0.0

        by_type = await db.execute(
            select(GeneratedTicket.ticket_type, func.count(GeneratedTicket.id)).group_by(GeneratedTicket.ticket_type)
        )

        tickets = (await db.execute(
            select(GeneratedTicket)
            .options(selectinload(GeneratedTicket.user))
            .order_by(GeneratedTicket.created_at.desc())
            .limit(20)
        )).scalars().all()
        trackers = (await db.execute(
            select(TripTracker)
            .options(selectinload(TripTracker.trip))
            .order_by(TripTracker.created_at.desc())
            .limit(10)
        )).scalars().all()

        feed = []
        for ticket in tickets:
            user = ticket.user
            feed.append({
                "id": ticket.ticket_id,
                "trip_id": f"trip-{ticket.id}",
                "destination": ticket_destination(ticket.ticket_metadata),
                "traveler_name": user.display_name if user else "Anonymous User",
                "email": user.email if user else "No email",
                "type": ticket.ticket_type.lower(),
                "status": "completed" if ticket.is_used else "active",
                "created_at": as_utc(ticket.created_at),
            })
        for tracker in trackers:
            feed.append({
                "id": tracker.tracker_id,
                "trip_id": tracker.trip_id,
                "destination": tracker.trip.destination or tracker.trip.trip_name or "Unknown",
                "traveler_name": tracker.traveler_name or "Unknown Traveler",
                "email": tracker.email,
                "type": "trip_tracker",
                "status": "active" if tracker.is_active else "completed",
                "created_at": as_utc(tracker.created_at),
            })
        feed.sort(key=lambda item: item["created_at"], reverse=True)

        return {
            "analytics": {
                "total_tickets": total_tickets,
                "active_tickets": total_tickets - used_tickets,
                "completed_tickets": used_tickets,
                "ticket_growth_rate": growth,
                "tickets_in_period": tickets_in_period,
                "tickets_by_type": {ticket_type.lower(): n for ticket_type, n in by_type.all()},
                "usage_rate": percentage(used_tickets, total_tickets, digits=1),
                "period": {"start": start, "end": end},
            },
            "tickets": feed[:TICKET_FEED_SIZE],
        }

    @staticmethod
    async def get_system_metrics(db: AsyncSession) -> dict:
        tables = {
            "users": await count(db, User),
            "trips": await count(db, Trip),
            "tickets": await count(db, GeneratedTicket),
            "trackers": await count(db, TripTracker),
        }

        since = utcnow() - timedelta(hours=24)
        last_24h = {
            "new_users": await count(db, User, User.created_at >= since),
            "new_trips": await count(db, Trip, Trip.created_at >= since),
            "new_tickets": await count(db, GeneratedTicket, GeneratedTicket.created_at >= since),
            "new_trackers": await count(db, TripTracker, TripTracker.created_at >= since),
            "tracker_reads": await count(db, TripTracker, TripTracker.last_accessed >= since),
        }

        uptime = time.monotonic() - PROCESS_STARTED
        max_rss_mb = None
        if resource is not None:
            # ru_maxrss is reported in kilobytes on Linux
            max_rss_mb = round(resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024, 1)

        return {
            "system": {
                "status": "healthy",
                "uptime": int(uptime),
                "uptime_formatted": format_uptime(uptime),
                "max_rss_mb": max_rss_mb,
                "cpu_cores": os.cpu_count(),
            },
            "database": {
                "status": "connected",
                "total_records": sum(tables.values()),
                "tables": tables,
                "tables_count": len(Base.metadata.tables),
            },
            "activity": {"last_24h": last_24h},
        }
