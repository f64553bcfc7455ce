import enum
import uuid

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.models.base import Base


class RewardStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class RewardOutbox(Base):
    """One row per committed check-in, drained by the reward dispatcher."""

    __tablename__ = "reward_outbox"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    check_in_id = Column(String, ForeignKey("check_ins.id"), unique=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    rarity_score = Column(Integer, nullable=False)

    status = Column(String, default=RewardStatus.PENDING.value, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(String, nullable=True)
    token_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
