import uuid

from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.sql import func
from app.models.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))

    # Always stored lower-cased; one user per wallet
    wallet_address = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, unique=True, nullable=True)

    # Progression
    total_points = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)  # 1 + total_points // LEVEL_POINTS_STEP

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
