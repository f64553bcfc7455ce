import pytest
from sqlalchemy import func, select

from app.core.seeding import LOCATIONS, seed_catalog
from app.models.location import Location
from app.models.quest import Quest
from domain.rules.quest_rules import VisitCategoryRequirement


@pytest.mark.asyncio
async def test_seed_catalog_is_repeatable(db_session, session_factory):
    await seed_catalog(db_session)
    await seed_catalog(db_session)

    async with session_factory() as session:
        locations = (await session.execute(select(func.count()).select_from(Location))).scalar_one()
        quests = (await session.execute(select(Quest).order_by(Quest.id))).scalars().all()

    assert locations == len(LOCATIONS)
    assert [q.id for q in quests] == ["quest_explorer", "quest_icons", "quest_park_hopper"]

    hopper = next(q for q in quests if q.id == "quest_park_hopper")
    assert isinstance(hopper.requirement, VisitCategoryRequirement)
    assert hopper.requirement.count == 3
