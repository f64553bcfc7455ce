from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.models.quest import QuestProgressEvent, UserQuest
from app.models.user import User
from application.services.checkin_service import CheckInService
from application.services.quest_engine import CLAIMED, QUEST_NOT_COMPLETED, QuestEngine
from domain.errors import UserQuestNotFound
from domain.events.checkin_event import CheckInEvent


def stand_at(world, location_id):
    loc = world["locations"][location_id]
    return loc.latitude, loc.longitude


async def reload(session, model, key):
    return await session.get(model, key, populate_existing=True)


@pytest.mark.asyncio
async def test_category_quest_completes_on_third_park(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_parks", "visit_category", {"category": "park", "count": 3})
    service = CheckInService(uow_factory)

    first = await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon)
    assert first.quest_updates[0].progress == 1
    assert first.quest_updates[0].target == 3
    assert not first.quest_updates[0].completed_now

    await service.check_in("u1", "park_b", *stand_at(world, "park_b"), now=noon + timedelta(minutes=5))
    third = await service.check_in("u1", "park_c", *stand_at(world, "park_c"), now=noon + timedelta(minutes=10))

    assert third.quest_updates[0].completed_now
    assert third.quest_updates[0].status == "completed"

    uq = await reload(db_session, UserQuest, "uq_q_parks")
    assert uq.progress == 3
    assert uq.status == "completed"
    assert uq.completed_at is not None


@pytest.mark.asyncio
async def test_other_categories_do_not_advance(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_parks", "visit_category", {"category": "park", "count": 3})
    service = CheckInService(uow_factory)

    outcome = await service.check_in("u1", "museum", *stand_at(world, "museum"), now=noon)

    assert outcome.quest_updates == []
    uq = await reload(db_session, UserQuest, "uq_q_parks")
    assert uq.progress == 0
    assert uq.status == "active"


@pytest.mark.asyncio
async def test_specific_quest_counts_each_location_once(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_pair", "visit_specific", {"location_ids": ["park_a", "museum"]})
    service = CheckInService(uow_factory)

    await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon)
    # Same place again in the next window: no progress
    again = await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon + timedelta(hours=1))
    assert again.quest_updates == []

    done = await service.check_in("u1", "museum", *stand_at(world, "museum"), now=noon + timedelta(hours=1))
    assert done.quest_updates[0].completed_now

    uq = await reload(db_session, UserQuest, "uq_q_pair")
    assert sorted(uq.visited_location_ids) == ["museum", "park_a"]
    assert uq.progress == 2


@pytest.mark.asyncio
async def test_unknown_quest_type_never_advances(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_weird", "visit_at_night", {"count": 1})
    await make_quest("q_count", "visit_count", {"count": 5})
    service = CheckInService(uow_factory)

    outcome = await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon)

    assert [u.quest_id for u in outcome.quest_updates] == ["q_count"]
    weird = await reload(db_session, UserQuest, "uq_q_weird")
    assert weird.progress == 0


@pytest.mark.asyncio
async def test_check_in_outside_quest_window_does_not_count(world, uow_factory, db_session, make_quest, noon):
    await make_quest(
        "q_later",
        "visit_count",
        {"count": 1},
        active_from=noon + timedelta(days=1),
        active_until=noon + timedelta(days=2),
    )
    service = CheckInService(uow_factory)

    outcome = await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon)

    assert outcome.quest_updates == []
    assert (await reload(db_session, UserQuest, "uq_q_later")).progress == 0


@pytest.mark.asyncio
async def test_redelivered_event_applies_once(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_count", "visit_count", {"count": 5})
    engine = QuestEngine(uow_factory)
    event = CheckInEvent(event_id="evt-1", user_id="u1", location_id="park_a", category="park", timestamp=noon)

    first = await engine.process_event(event)
    second = await engine.process_event(event)

    assert len(first) == 1
    assert second == []
    assert (await reload(db_session, UserQuest, "uq_q_count")).progress == 1
    markers = (await db_session.execute(select(func.count()).select_from(QuestProgressEvent))).scalar_one()
    assert markers == 1


@pytest.mark.asyncio
async def test_claim_pays_once(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_one", "visit_count", {"count": 1}, reward=500)
    service = CheckInService(uow_factory)
    checkin = await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon)
    # 100 start + 250 from the check-in
    assert checkin.total_points == 350

    engine = QuestEngine(uow_factory)
    first = await engine.claim("u1", "uq_q_one", now=noon + timedelta(minutes=1))
    assert first.outcome == CLAIMED
    assert first.claimed
    assert first.points_awarded == 500
    assert first.total_points == 850

    second = await engine.claim("u1", "uq_q_one", now=noon + timedelta(minutes=2))
    assert second.outcome == "QUEST_ALREADY_CLAIMED"
    assert not second.claimed

    user = await reload(db_session, User, "u1")
    assert user.total_points == 850
    uq = await reload(db_session, UserQuest, "uq_q_one")
    assert uq.status == "claimed"
    assert uq.claimed_at is not None


@pytest.mark.asyncio
async def test_claim_after_expiry_is_refused(world, uow_factory, db_session, make_quest, noon):
    await make_quest("q_short", "visit_count", {"count": 1}, reward=500, active_until=noon + timedelta(hours=1))
    service = CheckInService(uow_factory)
    await service.check_in("u1", "park_a", *stand_at(world, "park_a"), now=noon)

    engine = QuestEngine(uow_factory)
    outcome = await engine.claim("u1", "uq_q_short", now=noon + timedelta(hours=2))

    assert outcome.outcome == "QUEST_EXPIRED"
    assert (await reload(db_session, User, "u1")).total_points == 350
    assert (await reload(db_session, UserQuest, "uq_q_short")).status == "completed"


@pytest.mark.asyncio
async def test_claim_before_completion(world, uow_factory, make_quest, noon):
    await make_quest("q_count", "visit_count", {"count": 5})
    engine = QuestEngine(uow_factory)

    outcome = await engine.claim("u1", "uq_q_count", now=noon)
    assert outcome.outcome == QUEST_NOT_COMPLETED


@pytest.mark.asyncio
async def test_claim_someone_elses_quest(world, uow_factory, db_session, make_quest, noon):
    db_session.add(User(id="u2", wallet_address="0xdef"))
    await db_session.commit()
    await make_quest("q_count", "visit_count", {"count": 1}, user_id="u2")
    engine = QuestEngine(uow_factory)

    with pytest.raises(UserQuestNotFound):
        await engine.claim("u1", "uq_q_count", now=noon)


@pytest.mark.asyncio
async def test_list_user_quests_projects_expiry(world, uow_factory, make_quest, noon):
    await make_quest("q_parks", "visit_category", {"category": "park", "count": 3})
    await make_quest("q_old", "visit_count", {"count": 2}, active_until=noon - timedelta(minutes=1))
    engine = QuestEngine(uow_factory)

    views = {v["quest_id"]: v for v in await engine.list_user_quests("u1", now=noon)}

    assert views["q_parks"]["status"] == "active"
    assert views["q_parks"]["target"] == 3
    assert views["q_parks"]["progress_percent"] == 0
    assert views["q_parks"]["requirement_text"] == "Visit 3 park locations"
    assert views["q_old"]["status"] == "expired"
    assert views["q_old"]["seconds_remaining"] == 0


@pytest.mark.asyncio
async def test_assign_quest_is_idempotent(world, uow_factory, db_session, make_quest):
    await make_quest("q_count", "visit_count", {"count": 1})
    engine = QuestEngine(uow_factory)

    first = await engine.assign_quest("u1", "q_count")
    second = await engine.assign_quest("u1", "q_count")

    assert first.id == second.id == "uq_q_count"
