import hashlib
import math
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.core.logger import logger
from app.models.reviews.review_models import PlatformReview, TripReview
from app.models.trips.trip_model import Trip
from app.schemas.reviews.review_schema import PlatformReviewCreate, TripReviewCreate
from app.utils.dates import as_utc, utcnow

AVATAR_COLORS = ["1da1f2", "2e7d32", "e91e63", "ff9800", "9c27b0", "3f51b5", "009688", "f44336", "4caf50", "ff5722"]

REVIEW_TITLES = {
    5: ["Amazing Experience!", "Perfect Trip Planning", "Highly Recommended!", "Outstanding Service", "Exceeded Expectations"],
    4: ["Great Experience", "Very Satisfied", "Good Trip Planning", "Recommended", "Pleasant Journey"],
    3: ["Decent Experience", "Average Service", "Okay Trip", "Fair Planning", "Could Be Better"],
    2: ["Below Average", "Needs Improvement", "Disappointing", "Not Satisfied", "Poor Experience"],
    1: ["Very Poor", "Terrible Experience", "Not Recommended", "Waste of Time", "Awful Service"],
}

MONTH_NAMES = ["January", "February", "March", "April", "May", "June",
               "July", "August", "September", "October", "November", "December"]

DEFAULT_LOCATION = "Philippines"


def review_not_found() -> NotFoundError:
    return NotFoundError("The specified review could not be found", error="Review not found")


def average(total: Optional[float]) -> float:
    return round(float(total), 1) if total else 0.0


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# 🎨 Presentation helpers for the landing page cards

def avatar_url(name: str) -> str:
    digest = hashlib.md5(name.encode("utf-8")).hexdigest()
    color = AVATAR_COLORS[int(digest, 16) % len(AVATAR_COLORS)]
    return f"https://ui-avatars.com/api/?name={quote(name)}&background={color}&color=fff&size=150"


def review_title(rating: int, seed: int = 0) -> str:
    titles = REVIEW_TITLES.get(rating, REVIEW_TITLES[3])
    return titles[seed % len(titles)]


def format_trip_date(created_at: datetime, now: Optional[datetime] = None) -> str:
    now = now or utcnow()
    created_at = as_utc(created_at)
    diff_days = math.ceil(abs((now - created_at).total_seconds()) / 86400)

    if diff_days <= 30:
        weeks = diff_days // 7
        if weeks == 0:
            return "This week"
        return f"{weeks} week{'s' if weeks != 1 else ''} ago"
    if diff_days <= 365:
        return f"{MONTH_NAMES[created_at.month - 1]} {created_at.year}"
    return str(created_at.year)


def trip_location(trip: Optional[Trip]) -> str:
    if not trip or not trip.destinations:
        return DEFAULT_LOCATION
    first = sorted(trip.destinations, key=lambda d: (d.order_index or 0, d.id))[0]
    location = first.city or first.name or DEFAULT_LOCATION
    if first.province and first.province != first.city:
        location += f", {first.province}"
    return location


def review_card(review, kind: str, location: str) -> dict:
    return {
        "id": f"{kind}-{review.id}",
        "name": review.reviewer_name,
        "location": location,
        "avatar": avatar_url(review.reviewer_name),
        "rating": review.rating,
        "title": review_title(review.rating, review.id),
        "review": review.review_text,
        "destination": location,
        "trip_date": format_trip_date(review.created_at),
        "verified": True,
        "type": kind,
        "created_at": as_utc(review.created_at),
    }


# 📝 Creation

async def create_trip_review(session: AsyncSession, data: TripReviewCreate) -> TripReview:
    trip = await session.get(Trip, data.trip_id)
    if not trip:
        raise NotFoundError("The specified trip does not exist", error="Trip not found")

    review = TripReview(
        trip_id=data.trip_id,
        reviewer_name=data.reviewer_name,
        rating=data.rating,
        review_text=data.review_text,
        email=data.email,
    )
    session.add(review)
    await session.commit()
    await session.refresh(review)
    logger.info(f"Trip review {review.id} created for trip {data.trip_id}")
    return review


async def create_platform_review(session: AsyncSession, data: PlatformReviewCreate) -> PlatformReview:
    review = PlatformReview(
        reviewer_name=data.reviewer_name,
        rating=data.rating,
        review_text=data.review_text,
        destination=data.destination or None,
        email=data.email,
    )
    session.add(review)
    await session.commit()
    await session.refresh(review)
    logger.info(f"Platform review {review.id} created")
    return review


# 🔎 Queries

async def get_trip_reviews(
    session: AsyncSession,
    trip_id: str,
    page: int = 1,
    limit: int = 20,
    approved_only: bool = True
) -> tuple[list[TripReview], int, float]:
    conditions = [TripReview.trip_id == trip_id]
    if approved_only:
        conditions.append(TripReview.is_approved.is_(True))

    total = await session.scalar(select(func.count()).select_from(TripReview).where(*conditions))

    query = (
        select(TripReview)
        .where(*conditions)
        .order_by(TripReview.created_at.desc(), TripReview.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = (await session.execute(query)).scalars().all()

    # The average always covers approved reviews, whatever the listing filter
    avg_rating = await session.scalar(
        select(func.avg(TripReview.rating))
        .where(TripReview.trip_id == trip_id, TripReview.is_approved.is_(True))
    )
    return reviews, total or 0, average(avg_rating)


async def rating_distribution(session: AsyncSession, model, *conditions) -> dict[int, int]:
    distribution = {stars: 0 for stars in range(1, 6)}
    result = await session.execute(
        select(model.rating, func.count(model.id))
        .where(model.is_approved.is_(True), *conditions)
        .group_by(model.rating)
    )
    for rating, count in result.all():
        if rating in distribution:
            distribution[rating] = count
    return distribution


async def get_trip_review_stats(session: AsyncSession, trip_id: str) -> dict:
    approved = [TripReview.trip_id == trip_id, TripReview.is_approved.is_(True)]
    total = await session.scalar(select(func.count()).select_from(TripReview).where(*approved))
    avg_rating = await session.scalar(select(func.avg(TripReview.rating)).where(*approved))
    return {
        "total_reviews": total or 0,
        "average_rating": average(avg_rating),
        "rating_distribution": await rating_distribution(session, TripReview, TripReview.trip_id == trip_id),
    }


async def get_review(session: AsyncSession, review_id: int) -> TripReview:
    review = await session.get(TripReview, review_id)
    # Unapproved reviews are hidden from the public
    if not review or not review.is_approved:
        raise review_not_found()
    return review


async def get_recent_reviews(session: AsyncSession, limit: int = 10) -> list[TripReview]:
    query = (
        select(TripReview)
        .where(TripReview.is_approved.is_(True))
        .order_by(TripReview.created_at.desc(), TripReview.id.desc())
        .limit(limit)
    )
    return (await session.execute(query)).scalars().all()


async def search_reviews(
    session: AsyncSession,
    q: Optional[str] = None,
    trip_id: Optional[str] = None,
    rating: Optional[int] = None,
    page: int = 1,
    limit: int = 20
) -> tuple[list[TripReview], int]:
    conditions = [TripReview.is_approved.is_(True)]
    if trip_id:
        conditions.append(TripReview.trip_id == trip_id)
    if rating:
        conditions.append(TripReview.rating == rating)
    if q:
        conditions.append(or_(
            TripReview.review_text.contains(q),
            TripReview.reviewer_name.contains(q),
        ))

    total = await session.scalar(select(func.count()).select_from(TripReview).where(*conditions))
    query = (
        select(TripReview)
        .where(*conditions)
        .order_by(TripReview.created_at.desc(), TripReview.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = (await session.execute(query)).scalars().all()
    return reviews, total or 0


async def get_platform_stats(session: AsyncSession, limit: int = 5) -> dict:
    """Combined trip and platform review statistics plus the newest review cards."""
    trip_total = await session.scalar(
        select(func.count()).select_from(TripReview).where(TripReview.is_approved.is_(True))
    ) or 0
    trip_sum = await session.scalar(
        select(func.sum(TripReview.rating)).where(TripReview.is_approved.is_(True))
    ) or 0
    platform_total = await session.scalar(
        select(func.count()).select_from(PlatformReview).where(PlatformReview.is_approved.is_(True))
    ) or 0
    platform_sum = await session.scalar(
        select(func.sum(PlatformReview.rating)).where(PlatformReview.is_approved.is_(True))
    ) or 0

    total_reviews = trip_total + platform_total
    average_rating = round((trip_sum + platform_sum) / total_reviews, 1) if total_reviews else 0.0

    trip_distribution = await rating_distribution(session, TripReview)
    platform_distribution = await rating_distribution(session, PlatformReview)
    distribution = []
    for stars in range(5, 0, -1):
        count = trip_distribution[stars] + platform_distribution[stars]
        percentage = round(count / total_reviews * 100) if total_reviews else 0
        distribution.append({"stars": stars, "count": count, "percentage": percentage})

    per_kind = math.ceil(limit / 2)
    recent_trip = (await session.execute(
        select(TripReview)
        .where(TripReview.is_approved.is_(True))
        .options(selectinload(TripReview.trip).selectinload(Trip.destinations))
        .order_by(TripReview.created_at.desc(), TripReview.id.desc())
        .limit(per_kind)
    )).scalars().all()
    recent_platform = (await session.execute(
        select(PlatformReview)
        .where(PlatformReview.is_approved.is_(True))
        .order_by(PlatformReview.created_at.desc(), PlatformReview.id.desc())
        .limit(per_kind)
    )).scalars().all()

    cards = [review_card(r, "trip", trip_location(r.trip)) for r in recent_trip]
    cards += [review_card(r, "platform", r.destination or DEFAULT_LOCATION) for r in recent_platform]
    cards.sort(key=lambda card: card["created_at"], reverse=True)

    return {
        "stats": {
            "total_reviews": total_reviews,
            "average_rating": average_rating,
            "rating_distribution": distribution,
            "breakdown": {"trip_reviews": trip_total, "platform_reviews": platform_total},
        },
        "reviews": cards[:limit],
    }


# 🛡️ Moderation (admin)

async def set_review_approval(session: AsyncSession, review_id: int, is_approved: bool) -> TripReview:
    review = await session.get(TripReview, review_id)
    if not review:
        raise review_not_found()

    review.is_approved = is_approved
    await session.commit()
    await session.refresh(review)
    logger.info(f"Review {review_id} {'approved' if is_approved else 'unapproved'}")
    return review


async def delete_review(session: AsyncSession, review_id: int) -> None:
    review = await session.get(TripReview, review_id)
    if not review:
        raise review_not_found()

    await session.delete(review)
    await session.commit()
    logger.info(f"Review {review_id} deleted")
