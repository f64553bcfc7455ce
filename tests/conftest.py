import os
from datetime import datetime, timedelta, timezone

# Set test environment variables BEFORE any app imports
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from adapters.persistence.sqlite.unit_of_work import SqlAlchemyUnitOfWork
from app.core.database import enable_sqlite_pragmas
from app.models.base import Base
from app.models.location import Location
from app.models.quest import Quest, UserQuest
from app.models.user import User

# Import all models to ensure metadata is populated
import app.models  # noqa: F401

# A fixed afternoon (UTC) so the night bonus never kicks in by accident
NOON = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    # File-backed so concurrent sessions really use separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    enable_sqlite_pragmas(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uow_factory(session_factory):
    return lambda: SqlAlchemyUnitOfWork(session_factory)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def world(db_session):
    """
    One user standing in a small catalog:
    - park_a / park_b / park_c: parks, base rarity 1..2
    - museum: base rarity 3
    """
    user = User(id="u1", wallet_address="0xabc", total_points=100, level=1)
    locations = [
        Location(id="park_a", name="Park A", latitude=25.0330, longitude=121.5654, category="park", base_rarity=1),
        Location(id="park_b", name="Park B", latitude=25.0400, longitude=121.5600, category="park", base_rarity=2),
        Location(id="park_c", name="Park C", latitude=25.0500, longitude=121.5500, category="park", base_rarity=1),
        Location(id="museum", name="Museum", latitude=25.1000, longitude=121.5000, category="museum", base_rarity=3),
    ]
    db_session.add(user)
    db_session.add_all(locations)
    await db_session.commit()
    return {"user": user, "locations": {loc.id: loc for loc in locations}}


@pytest.fixture
def noon():
    return NOON


@pytest.fixture
def make_quest(db_session):
    """Create a quest and assign it to a user; returns the UserQuest."""

    async def _make(quest_id, quest_type, requirements, reward=500, user_id="u1", active_from=None, active_until=None):
        quest = Quest(
            id=quest_id,
            title=quest_id,
            quest_type=quest_type,
            requirements=requirements,
            reward_amount=reward,
            active_from=active_from or NOON - timedelta(days=1),
            active_until=active_until or NOON + timedelta(days=7),
        )
        user_quest = UserQuest(id=f"uq_{quest_id}", user_id=user_id, quest_id=quest_id)
        db_session.add_all([quest, user_quest])
        await db_session.commit()
        return user_quest

    return _make
