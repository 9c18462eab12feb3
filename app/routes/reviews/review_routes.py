from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.dependencies.auth import require_role
from app.models.user.user import UserRole
from app.schemas.common import MessageResponse
from app.schemas.reviews.review_schema import (
    Pagination,
    PlatformReviewCreate,
    PlatformReviewOut,
    PlatformStatsResponse,
    RecentReviewsResponse,
    ReviewApproval,
    ReviewCreate,
    ReviewCreateResponse,
    ReviewResponse,
    ReviewSearchResponse,
    ReviewUpdateResponse,
    SearchQuery,
    TripReviewCreate,
    TripReviewListResponse,
    TripReviewOut,
    TripReviewStatsResponse,
)
from app.services.reviews import review_service

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate = Body(..., discriminator="type"),
    db: AsyncSession = Depends(get_db)
):
    if isinstance(payload, TripReviewCreate):
        review = await review_service.create_trip_review(db, payload)
        out = TripReviewOut.model_validate(review)
    else:
        review = await review_service.create_platform_review(db, payload)
        out = PlatformReviewOut.model_validate(review)
    return ReviewCreateResponse(message="Review created successfully", review=out, type=payload.type)


@router.post("/platform", response_model=ReviewCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_platform_review(
    payload: PlatformReviewCreate,
    db: AsyncSession = Depends(get_db)
):
    review = await review_service.create_platform_review(db, payload)
    return ReviewCreateResponse(
        message="Platform review created successfully",
        review=PlatformReviewOut.model_validate(review),
        type="platform"
    )


@router.get("/trip/{trip_id}", response_model=TripReviewListResponse)
async def list_trip_reviews(
    trip_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    approved: bool = Query(True),
    db: AsyncSession = Depends(get_db)
):
    reviews, total, avg_rating = await review_service.get_trip_reviews(db, trip_id, page, limit, approved)
    return TripReviewListResponse(
        reviews=reviews,
        pagination=Pagination(page=page, limit=limit, total=total, pages=review_service.page_count(total, limit)),
        stats={"total_reviews": total, "average_rating": avg_rating},
    )


@router.get("/trip/{trip_id}/stats", response_model=TripReviewStatsResponse)
async def trip_review_stats(
    trip_id: str,
    db: AsyncSession = Depends(get_db)
):
    stats = await review_service.get_trip_review_stats(db, trip_id)
    return TripReviewStatsResponse(stats=stats)


@router.get("/recent/all", response_model=RecentReviewsResponse)
async def recent_reviews(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    reviews = await review_service.get_recent_reviews(db, limit)
    return RecentReviewsResponse(reviews=reviews)


@router.get("/search/query", response_model=ReviewSearchResponse)
async def search_reviews(
    q: Optional[str] = Query(None),
    trip_id: Optional[str] = Query(None, alias="tripId"),
    rating: Optional[int] = Query(None, ge=1, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    reviews, total = await review_service.search_reviews(db, q, trip_id, rating, page, limit)
    return ReviewSearchResponse(
        reviews=reviews,
        pagination=Pagination(page=page, limit=limit, total=total, pages=review_service.page_count(total, limit)),
        query=SearchQuery(q=q, trip_id=trip_id, rating=rating),
    )


@router.get("/platform/stats", response_model=PlatformStatsResponse)
async def platform_stats(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db)
):
    result = await review_service.get_platform_stats(db, limit)
    return PlatformStatsResponse(**result)


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: int,
    db: AsyncSession = Depends(get_db)
):
    review = await review_service.get_review(db, review_id)
    return ReviewResponse(review=review)


@router.put("/{review_id}/approve", response_model=ReviewUpdateResponse)
async def approve_review(
    review_id: int,
    payload: ReviewApproval,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role(UserRole.admin))
):
    review = await review_service.set_review_approval(db, review_id, payload.is_approved)
    message = f"Review {'approved' if payload.is_approved else 'unapproved'} successfully"
    return ReviewUpdateResponse(message=message, review=review)


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role(UserRole.admin))
):
    await review_service.delete_review(db, review_id)
    return MessageResponse(message="Review deleted successfully")
