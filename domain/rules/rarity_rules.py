import enum
from datetime import datetime, tzinfo
from math import floor
from typing import Optional


class RarityTier(str, enum.Enum):
    COMMON = "COMMON"
    RARE = "RARE"
    EPIC = "EPIC"
    LEGENDARY = "LEGENDARY"


class RarityRules:
    BASE_MULTIPLIER = 25
    NIGHT_BONUS = 1.5
    NIGHT_START_HOUR = 20  # inclusive
    NIGHT_END_HOUR = 6  # exclusive
    MAX_SCORE = 100
    POINTS_PER_SCORE = 10

    # Lower bounds, checked highest first
    TIER_THRESHOLDS = (
        (75, RarityTier.LEGENDARY),
        (50, RarityTier.EPIC),
        (25, RarityTier.RARE),
    )

    @staticmethod
    def local_hour(at_time: datetime, tz: Optional[tzinfo] = None) -> int:
        if tz is not None and at_time.tzinfo is not None:
            return at_time.astimezone(tz).hour
        return at_time.hour

    @staticmethod
    def is_night(hour: int) -> bool:
        return hour >= RarityRules.NIGHT_START_HOUR or hour < RarityRules.NIGHT_END_HOUR

    @staticmethod
    def score(base_rarity: Optional[int], at_time: datetime, tz: Optional[tzinfo] = None) -> int:
        """
        Rarity score in [0, 100].
        raw = floor(base * 25 * night_bonus); night is 20:00 to 06:00 local time.
        """
        base = base_rarity or 1
        bonus = RarityRules.NIGHT_BONUS if RarityRules.is_night(RarityRules.local_hour(at_time, tz)) else 1.0
        raw = floor(base * RarityRules.BASE_MULTIPLIER * bonus)
        return max(0, min(raw, RarityRules.MAX_SCORE))

    @staticmethod
    def tier(score: Optional[int]) -> RarityTier:
        if score is None:
            return RarityTier.COMMON
        for lower_bound, tier in RarityRules.TIER_THRESHOLDS:
            if score >= lower_bound:
                return tier
        return RarityTier.COMMON

    @staticmethod
    def points_for(score: int) -> int:
        return score * RarityRules.POINTS_PER_SCORE
