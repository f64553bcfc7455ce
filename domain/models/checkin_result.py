from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from domain.rules.rarity_rules import RarityTier


class QuestProgressDelta(BaseModel):
    user_quest_id: str
    quest_id: str
    progress: int
    target: int
    status: str
    completed_now: bool = False


class CheckInOutcome(BaseModel):
    """
    Result of one check-in attempt.
    `replayed` is set when an idempotency key matched an earlier attempt.
    """

    check_in_id: str
    user_id: str
    location_id: str
    location_name: Optional[str] = None
    timestamp: datetime
    distance_km: float
    rarity_score: int
    tier: RarityTier
    points_awarded: int
    total_points: int
    level: int
    reward_ref: Optional[str] = None
    quest_updates: List[QuestProgressDelta] = Field(default_factory=list)
    replayed: bool = False


class ClaimOutcome(BaseModel):
    user_quest_id: str
    outcome: str  # CLAIMED | QUEST_ALREADY_CLAIMED | QUEST_EXPIRED | QUEST_NOT_COMPLETED
    points_awarded: int = 0
    total_points: Optional[int] = None
    message: str = ""

    @property
    def claimed(self) -> bool:
        return self.outcome == "CLAIMED"
