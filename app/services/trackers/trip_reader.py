from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.trips.trip_destination import TripDestination
from app.models.trips.trip_model import Trip
from app.models.trips.trip_route import TripRoute
from app.schemas.trackers.tracker_schema import DestinationView, RouteView, TripView
from app.utils.dates import format_display_date


def to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


async def get_ordered_destinations(db: AsyncSession, trip_id: str) -> List[TripDestination]:
    result = await db.execute(
        select(TripDestination)
        .where(TripDestination.trip_id == trip_id)
        .order_by(TripDestination.order_index.asc(), TripDestination.added_at.asc())
    )
    return list(result.scalars().all())


async def get_latest_route(db: AsyncSession, trip_id: str) -> Optional[TripRoute]:
    result = await db.execute(
        select(TripRoute)
        .where(TripRoute.trip_id == trip_id)
        .order_by(TripRoute.calculated_at.desc(), TripRoute.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def destination_view(dest: TripDestination) -> DestinationView:
    return DestinationView(
        id=dest.id,
        destination_id=dest.destination_id,
        name=dest.name,
        city=dest.city,
        province=dest.province,
        description=dest.description,
        category=dest.category,
        rating=to_float(dest.rating),
        budget=to_float(dest.budget),
        latitude=to_float(dest.latitude),
        longitude=to_float(dest.longitude),
        operating_hours=dest.operating_hours,
        contact_information=dest.contact_information,
        order_index=dest.order_index,
    )


def route_view(route: TripRoute) -> RouteView:
    return RouteView(
        points=route.route_data or [],
        distance_km=to_float(route.distance_km) or 0,
        time_min=route.time_minutes or 0,
        source=route.route_source,
    )


async def assemble_trip_view(db: AsyncSession, trip_id: str) -> TripView:
    """
    Build the trip aggregate: trip fields, destinations ordered by
    (order_index, added_at) and the most recently calculated route.

    ``route_data`` is left unset when the trip has no route so that it is
    dropped from the response instead of rendered as null.
    """
    trip = await db.get(Trip, trip_id)
    if trip is None:
        raise NotFoundError("The specified trip could not be found", error="Trip not found")

    destinations = await get_ordered_destinations(db, trip_id)
    route = await get_latest_route(db, trip_id)

    fields = dict(
        id=trip.id,
        trip_name=trip.trip_name,
        destination=trip.destination,
        start_date=trip.start_date,
        start_date_formatted=format_display_date(trip.start_date),
        end_date=trip.end_date,
        budget=to_float(trip.budget) or 0,
        travelers=trip.travelers,
        status=trip.status.value if trip.status else None,
        created_at=trip.created_at,
        updated_at=trip.updated_at,
        destinations=[destination_view(d) for d in destinations],
    )
    if route is not None:
        fields["route_data"] = route_view(route)

    return TripView(**fields)
