from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.schemas.common import MessageResponse
from app.schemas.trackers.tracker_schema import (
    TrackerCreate,
    TrackerCreateResponse,
    TrackerListResponse,
    TrackerReadResponse,
    TrackerStatsResponse,
    TrackerUpdate,
    TrackerUpdateResponse,
    TrackerValidationResponse,
)
from app.services.trackers.tracker_service import TrackerService, get_tracker_service

router = APIRouter(prefix="/trackers", tags=["Trip Trackers"])


def share_base_url(request: Request) -> str:
    return settings.FRONTEND_BASE_URL or str(request.base_url)


@router.post("", response_model=TrackerCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_tracker(
    payload: TrackerCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    tracker = await tracker_service.create(db, payload, share_base_url(request), background_tasks)
    return TrackerCreateResponse(tracker=tracker)


@router.get("/email/{email}", response_model=TrackerListResponse)
async def list_trackers_by_email(
    email: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    trackers = await tracker_service.list_by_email(db, email, share_base_url(request))
    return TrackerListResponse(trackers=trackers, count=len(trackers))


@router.get("/{tracker_id}", response_model=TrackerReadResponse, response_model_exclude_unset=True)
async def get_trip_by_tracker(
    tracker_id: str,
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    # exclude_unset drops routeData when the trip has no route
    trip = await tracker_service.read(db, tracker_id, email)
    return TrackerReadResponse(success=True, trip=trip)


@router.put("/{tracker_id}", response_model=TrackerUpdateResponse)
async def update_tracker(
    tracker_id: str,
    patch: TrackerUpdate,
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    tracker = await tracker_service.update(db, tracker_id, patch, email)
    return TrackerUpdateResponse(tracker=tracker)


@router.delete("/{tracker_id}", response_model=MessageResponse)
async def deactivate_tracker(
    tracker_id: str,
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    await tracker_service.deactivate(db, tracker_id, email)
    return MessageResponse(message="Tracker deactivated successfully")


@router.get("/{tracker_id}/stats", response_model=TrackerStatsResponse)
async def get_tracker_stats(
    tracker_id: str,
    email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    stats = await tracker_service.stats(db, tracker_id, email)
    return TrackerStatsResponse(stats=stats)


@router.get("/{tracker_id}/validate", response_model=TrackerValidationResponse, response_model_exclude_none=True)
async def validate_tracker(
    tracker_id: str,
    db: AsyncSession = Depends(get_db),
    tracker_service: TrackerService = Depends(get_tracker_service)
):
    return await tracker_service.validate(db, tracker_id)
