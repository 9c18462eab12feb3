"""Pytest configuration and fixtures for testing."""

import os

# Settings are read at import time, so the environment has to be in place first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["FRONTEND_BASE_URL"] = "https://wertigo.test"
os.environ["SMTP_USER"] = ""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

import app.models  # noqa: F401
from app.core.database import Base, get_db
from app.core.security import create_access_token, hash_password
from app.main import app
from app.models import (
    GeneratedTicket,
    Trip,
    TripDestination,
    TripRoute,
    TripTracker,
    User,
)
from app.models.trips.trip_model import TripStatus
from app.models.user.user import UserRole
from app.services.notifications.dispatcher import NotificationDispatcher, get_notification_dispatcher
from app.services.notifications.email_service import SendResult, TrackerEmailData
from app.utils.dates import utcnow


class FakeMailer:
    """Stands in for EmailService; fails the first ``fail_times`` sends."""

    def __init__(self, fail_times: int = 0, raises: bool = False):
        self.fail_times = fail_times
        self.raises = raises
        self.attempts = 0
        self.sent: List[tuple] = []

    def send(self, recipient: str, data: TrackerEmailData) -> SendResult:
        self.attempts += 1
        if self.attempts <= self.fail_times:
            if self.raises:
                raise ConnectionError("smtp down")
            return SendResult(success=False, error="535 authentication failed")
        self.sent.append((recipient, data))
        return SendResult(success=True, message_id=f"<msg-{self.attempts}@wertigo.test>")


@pytest.fixture
async def engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def dispatcher(mailer):
    return NotificationDispatcher(mailer, max_attempts=3, min_wait=0, max_wait=0)


@pytest.fixture
async def client(session_factory, dispatcher):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def disk_engine(tmp_path):
    """File backed SQLite, one connection per session, for concurrent access."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'wertigo.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def disk_session_factory(disk_engine):
    return sessionmaker(bind=disk_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def disk_client(disk_session_factory, dispatcher):
    async def override_get_db():
        async with disk_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# Factories

async def make_trip(
    db: AsyncSession,
    trip_name: str = "Cebu Adventure",
    destination: str = "Cebu",
    start_date: Optional[date] = None,
    status: TripStatus = TripStatus.active,
    budget: Optional[Decimal] = Decimal("15000.00"),
    user_id: Optional[int] = None,
) -> Trip:
    trip = Trip(
        trip_name=trip_name,
        destination=destination,
        start_date=start_date,
        budget=budget,
        travelers=2,
        status=status,
        user_id=user_id,
    )
    db.add(trip)
    await db.commit()
    await db.refresh(trip)
    return trip


async def add_destination(
    db: AsyncSession,
    trip: Trip,
    name: str,
    order_index: int,
    city: Optional[str] = None,
    added_at: Optional[datetime] = None,
) -> TripDestination:
    dest = TripDestination(
        trip_id=trip.id,
        name=name,
        city=city,
        province="Cebu",
        rating=Decimal("4.50"),
        latitude=Decimal("10.31570000"),
        longitude=Decimal("123.88540000"),
        order_index=order_index,
        added_at=added_at or utcnow(),
    )
    db.add(dest)
    await db.commit()
    return dest


async def add_route(
    db: AsyncSession,
    trip: Trip,
    calculated_at: datetime,
    distance_km: Decimal = Decimal("12.50"),
    source: str = "osrm",
) -> TripRoute:
    route = TripRoute(
        trip_id=trip.id,
        route_data=[[10.3157, 123.8854], [10.2934, 123.9021]],
        distance_km=distance_km,
        time_minutes=35,
        route_source=source,
        calculated_at=calculated_at,
    )
    db.add(route)
    await db.commit()
    return route


async def make_tracker(
    db: AsyncSession,
    trip: Trip,
    tracker_id: str = "TRKABC1234567",
    email: str = "ana@example.com",
    is_active: bool = True,
    expires_at: Optional[datetime] = None,
    access_count: int = 0,
) -> TripTracker:
    tracker = TripTracker(
        tracker_id=tracker_id,
        trip_id=trip.id,
        email=email,
        traveler_name="Ana Santos",
        is_active=is_active,
        expires_at=expires_at,
        access_count=access_count,
    )
    db.add(tracker)
    await db.commit()
    await db.refresh(tracker)
    return tracker


async def make_user(
    db: AsyncSession,
    email: str = "user@example.com",
    username: str = "traveler",
    role: UserRole = UserRole.user,
    password: str = "supersecret",
) -> User:
    user = User(
        email=email,
        username=username,
        first_name="Juan",
        last_name="Dela Cruz",
        hashed_password=hash_password(password),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_ticket(
    db: AsyncSession,
    ticket_id: str = "TKT-0001",
    user: Optional[User] = None,
    ticket_type: str = "AI_RECOMMENDATION",
    is_used: bool = False,
    metadata: Optional[dict] = None,
) -> GeneratedTicket:
    ticket = GeneratedTicket(
        ticket_id=ticket_id,
        user_id=user.id if user else None,
        ticket_type=ticket_type,
        is_used=is_used,
        ticket_metadata=metadata,
    )
    db.add(ticket)
    await db.commit()
    await db.refresh(ticket)
    return ticket


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def trip(db):
    return await make_trip(db, start_date=date(2025, 1, 1))


@pytest.fixture
async def admin_user(db):
    return await make_user(db, email="admin@example.com", username="admin", role=UserRole.admin)


@pytest.fixture
async def regular_user(db):
    return await make_user(db)


def past(**kwargs) -> datetime:
    return utcnow() - timedelta(**kwargs)


def future(**kwargs) -> datetime:
    return utcnow() + timedelta(**kwargs)
