from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user.user import UserRole
from app.core.database import get_db
from app.dependencies.auth import require_role
from app.schemas.admin.admin_analytics import (
    DestinationAnalyticsResponse,
    OverviewResponse,
    SystemMetricsResponse,
    TicketAnalyticsResponse,
    TripAnalyticsResponse,
    UserAnalyticsResponse,
)
from app.services.admin.admin_analytics import AdminAnalyticsService, resolve_period

router = APIRouter(
    prefix="/admin",
    tags=["Admin Analytics"],
    dependencies=[Depends(require_role(UserRole.admin))]
)


def period_params(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate")
):
    return resolve_period(start_date, end_date)


@router.get("/analytics/overview", response_model=OverviewResponse)
async def analytics_overview(period=Depends(period_params), db: AsyncSession = Depends(get_db)):
    analytics = await AdminAnalyticsService.get_overview(db, *period)
    return OverviewResponse(analytics=analytics)


@router.get("/analytics/users", response_model=UserAnalyticsResponse)
async def user_analytics(period=Depends(period_params), db: AsyncSession = Depends(get_db)):
    analytics = await AdminAnalyticsService.get_user_analytics(db, *period)
    return UserAnalyticsResponse(analytics=analytics)


@router.get("/analytics/trips", response_model=TripAnalyticsResponse)
async def trip_analytics(period=Depends(period_params), db: AsyncSession = Depends(get_db)):
    analytics = await AdminAnalyticsService.get_trip_analytics(db, *period)
    return TripAnalyticsResponse(analytics=analytics)


@router.get("/analytics/destinations", response_model=DestinationAnalyticsResponse)
async def destination_analytics(limit: int = Query(10, ge=1, le=50), db: AsyncSession = Depends(get_db)):
    destinations = await AdminAnalyticsService.get_popular_destinations(db, limit)
    return DestinationAnalyticsResponse(destinations=destinations)


@router.get("/analytics/tickets", response_model=TicketAnalyticsResponse)
async def ticket_analytics(period=Depends(period_params), db: AsyncSession = Depends(get_db)):
    result = await AdminAnalyticsService.get_ticket_analytics(db, *period)
    return TicketAnalyticsResponse(**result)


@router.get("/system/metrics", response_model=SystemMetricsResponse)
async def system_metrics(db: AsyncSession = Depends(get_db)):
    metrics = await AdminAnalyticsService.get_system_metrics(db)
    return SystemMetricsResponse(metrics=metrics)
