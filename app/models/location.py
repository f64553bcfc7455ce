import uuid

from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.models.base import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    address = Column(String, nullable=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    category = Column(String, nullable=False, index=True)  # park, museum, cafe...
    base_rarity = Column(Integer, default=1, nullable=False)  # 1..4
    timezone = Column(String, nullable=True)  # IANA name for the night bonus

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class LocationStats(Base):
    __tablename__ = "location_stats"

    location_id = Column(String, ForeignKey("locations.id"), primary_key=True)
    total_check_ins = Column(Integer, default=0, nullable=False)
    last_check_in = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
