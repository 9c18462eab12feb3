from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.dates import utcnow

class TripRoute(Base):
    __tablename__ = "trip_routes"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(String(36), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    route_data = Column(JSON, nullable=True)  # list of [lat, lng] points
    distance_km = Column(Numeric(10, 2), nullable=True)
    time_minutes = Column(Integer, nullable=True)
    route_source = Column(String(50), nullable=True)
    calculated_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    trip = relationship("Trip", back_populates="routes")
