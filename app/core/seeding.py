from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.location import Location
from app.models.quest import Quest, QuestType
from domain.rules.time_rules import utcnow
import logging

logger = logging.getLogger(__name__)

LOCATIONS = [
    {
        "id": "loc_central_park",
        "name": "Central Park",
        "description": "Urban park in Manhattan",
        "address": "New York, NY 10024",
        "latitude": 40.785091,
        "longitude": -73.968285,
        "category": "park",
        "base_rarity": 1,
        "timezone": "America/New_York",
    },
    {
        "id": "loc_bryant_park",
        "name": "Bryant Park",
        "description": "Public park between Fifth and Sixth Avenues",
        "address": "New York, NY 10018",
        "latitude": 40.753597,
        "longitude": -73.983233,
        "category": "park",
        "base_rarity": 2,
        "timezone": "America/New_York",
    },
    {
        "id": "loc_met_museum",
        "name": "The Metropolitan Museum of Art",
        "description": "Art museum on Fifth Avenue",
        "address": "1000 5th Ave, New York, NY 10028",
        "latitude": 40.779437,
        "longitude": -73.963244,
        "category": "museum",
        "base_rarity": 3,
        "timezone": "America/New_York",
    },
    {
        "id": "loc_statue_of_liberty",
        "name": "Statue of Liberty",
        "description": "Colossal statue on Liberty Island",
        "address": "Liberty Island, New York, NY 10004",
        "latitude": 40.689247,
        "longitude": -74.044502,
        "category": "landmark",
        "base_rarity": 4,
        "timezone": "America/New_York",
    },
]


def _quests(now):
    week = now + timedelta(days=7)
    return [
        {
            "id": "quest_explorer",
            "title": "City Explorer",
            "description": "Check in anywhere in the city",
            "quest_type": QuestType.VISIT_COUNT.value,
            "requirements": {"count": 5},
            "reward_amount": 500,
        },
        {
            "id": "quest_park_hopper",
            "title": "Park Hopper",
            "description": "Visit the city's parks",
            "quest_type": QuestType.VISIT_CATEGORY.value,
            "requirements": {"category": "park", "count": 3},
            "reward_amount": 300,
        },
        {
            "id": "quest_icons",
            "title": "Icons of New York",
            "description": "See the museum and the statue",
            "quest_type": QuestType.VISIT_SPECIFIC.value,
            "requirements": {"location_ids": ["loc_met_museum", "loc_statue_of_liberty"]},
            "reward_amount": 1000,
        },
    ], now, week


async def seed_catalog(session: AsyncSession):
    """Seed demo locations and quests if they don't exist."""
    quests, active_from, active_until = _quests(utcnow())
    try:
        for loc in LOCATIONS:
            existing = (await session.execute(select(Location).where(Location.id == loc["id"]))).scalars().first()
            if not existing:
                session.add(Location(**loc))
                logger.info(f"Seeding new location: {loc['name']}")

        for q in quests:
            existing = (await session.execute(select(Quest).where(Quest.id == q["id"]))).scalars().first()
            if not existing:
                session.add(Quest(**q, active_from=active_from, active_until=active_until))
                logger.info(f"Seeding new quest: {q['title']}")
            else:
                # Keep demo quests live
                existing.active_until = active_until

        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Seeding failed: {e}")
        await session.rollback()
        raise
