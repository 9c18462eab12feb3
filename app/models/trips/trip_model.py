from sqlalchemy import Column, Integer, String, Date, ForeignKey, Enum, DateTime, Numeric
from app.core.database import Base
from app.utils.dates import utcnow
from sqlalchemy.orm import relationship
import enum
import uuid

class TripStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"

class Trip(Base):
    __tablename__ = "trips"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Owned by a registered user or by an anonymous browser session
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    session_id = Column(String(255), nullable=True, index=True)

    trip_name = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    budget = Column(Numeric(12, 2), nullable=True)
    travelers = Column(Integer, default=1)
    status = Column(Enum(TripStatus), nullable=False, default=TripStatus.active)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="trips")
    destinations = relationship("TripDestination", back_populates="trip", cascade="all, delete-orphan")
    routes = relationship("TripRoute", back_populates="trip", cascade="all, delete-orphan")
    trackers = relationship("TripTracker", back_populates="trip", passive_deletes=True)
    reviews = relationship("TripReview", back_populates="trip", passive_deletes=True)
