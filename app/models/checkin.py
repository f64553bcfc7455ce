import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from app.models.base import Base


class CheckIn(Base):
    __tablename__ = "check_ins"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    location_id = Column(String, ForeignKey("locations.id"), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    rarity_score = Column(Integer, nullable=False)
    points_awarded = Column(Integer, default=0, nullable=False)

    # Dedup keys
    window_index = Column(Integer, nullable=False)
    idempotency_key = Column(String, nullable=True)

    # External reward (mint) reference; "pending-<id>" until reconciled
    reward_ref = Column(String, nullable=True)
    transaction_hash = Column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "location_id", "window_index", name="uq_checkin_user_location_window"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_checkin_user_idempotency_key"),
        Index("ix_checkin_user_timestamp", "user_id", "timestamp"),
    )
