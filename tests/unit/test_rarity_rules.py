from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from domain.rules.rarity_rules import RarityRules, RarityTier


def at(hour, minute=0):
    return datetime(2025, 1, 10, hour, minute, tzinfo=timezone.utc)


def test_daytime_score_is_base_times_25():
    assert RarityRules.score(1, at(12)) == 25
    assert RarityRules.score(2, at(12)) == 50
    assert RarityRules.score(3, at(12)) == 75
    assert RarityRules.score(4, at(12)) == 100


def test_night_bonus_applies_from_20_to_6():
    # base 2 at 22:00 -> floor(2 * 25 * 1.5) = 75
    assert RarityRules.score(2, at(22)) == 75
    assert RarityRules.score(1, at(20)) == 37
    assert RarityRules.score(1, at(5, 59)) == 37

    # Boundaries: 06:00 and 19:59 are daytime
    assert RarityRules.score(1, at(6)) == 25
    assert RarityRules.score(1, at(19, 59)) == 25


def test_score_is_clamped_to_100():
    assert RarityRules.score(4, at(23)) == 100
    assert RarityRules.score(10, at(12)) == 100


def test_missing_base_rarity_defaults_to_one():
    assert RarityRules.score(None, at(12)) == 25
    assert RarityRules.score(0, at(12)) == 25


def test_night_is_evaluated_in_location_timezone():
    # 14:00 UTC is 22:00 in Taipei
    noon_utc = at(14)
    assert RarityRules.score(2, noon_utc) == 50
    assert RarityRules.score(2, noon_utc, ZoneInfo("Asia/Taipei")) == 75


def test_naive_time_uses_its_own_hour():
    assert RarityRules.score(1, datetime(2025, 1, 10, 23, 0), ZoneInfo("Asia/Taipei")) == 37


@pytest.mark.parametrize(
    "score,expected",
    [
        (None, RarityTier.COMMON),
        (0, RarityTier.COMMON),
        (24, RarityTier.COMMON),
        (25, RarityTier.RARE),
        (49, RarityTier.RARE),
        (50, RarityTier.EPIC),
        (74, RarityTier.EPIC),
        (75, RarityTier.LEGENDARY),
        (100, RarityTier.LEGENDARY),
    ],
)
def test_tier_boundaries(score, expected):
    assert RarityRules.tier(score) == expected


def test_tier_is_monotonic():
    order = [RarityTier.COMMON, RarityTier.RARE, RarityTier.EPIC, RarityTier.LEGENDARY]
    ranks = [order.index(RarityRules.tier(s)) for s in range(0, 101)]
    assert ranks == sorted(ranks)


def test_score_stays_in_range_for_every_hour():
    for base in range(0, 8):
        for hour in range(24):
            assert 0 <= RarityRules.score(base, at(hour)) <= 100


def test_points_are_ten_per_score():
    assert RarityRules.points_for(75) == 750
    assert RarityRules.points_for(0) == 0
