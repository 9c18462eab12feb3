from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Numeric
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.dates import utcnow

class TripDestination(Base):
    __tablename__ = "trip_destinations"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(String(36), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    destination_id = Column(String(64), nullable=True)  # id in the recommendation catalogue
    name = Column(String(255), nullable=False)
    city = Column(String(255), nullable=True)
    province = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    rating = Column(Numeric(3, 2), nullable=True)
    budget = Column(Numeric(10, 2), nullable=True)
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    operating_hours = Column(String(255), nullable=True)
    contact_information = Column(String(255), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    added_at = Column(DateTime(timezone=True), default=utcnow)

    trip = relationship("Trip", back_populates="destinations")
