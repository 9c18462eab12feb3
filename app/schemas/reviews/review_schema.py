from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Dict, List, Literal, Optional, Union
from datetime import datetime
from app.schemas.common import CamelModel


class _ReviewBase(CamelModel):
    reviewer_name: str = Field(..., min_length=2, max_length=255)
    rating: int = Field(..., ge=1, le=5, strict=True)
    review_text: str = Field(..., min_length=10, max_length=2000)
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
        return value or None


# ⭐ Review about one trip
class TripReviewCreate(_ReviewBase):
    type: Literal["trip"] = "trip"
    trip_id: str = Field(..., min_length=1, max_length=36)


# 🌏 Review about the platform in general
class PlatformReviewCreate(_ReviewBase):
    type: Literal["platform"] = "platform"
    destination: Optional[str] = Field(None, max_length=255)


# Tagged by "type"; the route declares the discriminator
ReviewCreate = Union[TripReviewCreate, PlatformReviewCreate]


class ReviewApproval(CamelModel):
    is_approved: bool


class TripReviewOut(CamelModel):
    # Distinct key sets keep the trip/platform response union unambiguous
    model_config = ConfigDict(extra="forbid")

    id: int
    trip_id: Optional[str] = None
    reviewer_name: str
    rating: int
    review_text: str
    is_approved: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlatformReviewOut(CamelModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    reviewer_name: str
    rating: int
    review_text: str
    destination: Optional[str] = None
    is_approved: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReviewCreateResponse(CamelModel):
    success: bool = True
    message: str
    review: Union[TripReviewOut, PlatformReviewOut]
    type: Literal["trip", "platform"]


class ReviewResponse(CamelModel):
    success: bool = True
    review: TripReviewOut


class ReviewUpdateResponse(CamelModel):
    success: bool = True
    message: str
    review: TripReviewOut


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TripReviewSummary(CamelModel):
    total_reviews: int
    average_rating: float


class TripReviewListResponse(CamelModel):
    success: bool = True
    reviews: List[TripReviewOut]
    pagination: Pagination
    stats: TripReviewSummary


class TripReviewStats(CamelModel):
    total_reviews: int
    average_rating: float
    rating_distribution: Dict[int, int]


class TripReviewStatsResponse(CamelModel):
    success: bool = True
    stats: TripReviewStats


class RecentReviewsResponse(CamelModel):
    success: bool = True
    reviews: List[TripReviewOut]


class SearchQuery(CamelModel):
    q: Optional[str] = None
    trip_id: Optional[str] = None
    rating: Optional[int] = None


class ReviewSearchResponse(CamelModel):
    success: bool = True
    reviews: List[TripReviewOut]
    pagination: Pagination
    query: SearchQuery


class RatingBucket(CamelModel):
    stars: int
    count: int
    percentage: int


class ReviewBreakdown(CamelModel):
    trip_reviews: int
    platform_reviews: int


class PlatformStats(CamelModel):
    total_reviews: int
    average_rating: float
    rating_distribution: List[RatingBucket]
    breakdown: ReviewBreakdown


class ReviewCard(CamelModel):
    """Display-ready review shown on the landing page."""
    id: str
    name: str
    location: str
    avatar: str
    rating: int
    title: str
    review: str
    destination: str
    trip_date: str
    verified: bool = True
    type: Literal["trip", "platform"]
    created_at: datetime


class PlatformStatsResponse(CamelModel):
    success: bool = True
    stats: PlatformStats
    reviews: List[ReviewCard]
