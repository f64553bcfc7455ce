import logging
from datetime import datetime
from typing import Callable, List, Optional

from app.core.config import settings
from domain.errors import QuestAlreadyClaimed, QuestExpired, UserQuestNotFound
from domain.events.checkin_event import CheckInEvent
from domain.models.checkin_result import ClaimOutcome, QuestProgressDelta
from domain.ports.unit_of_work import UnitOfWork
from domain.rules.quest_rules import QuestRules, UserQuestStatus
from domain.rules.time_rules import as_utc, utcnow
from application.services.transaction import run_in_unit_of_work

logger = logging.getLogger(__name__)

CLAIMED = "CLAIMED"
QUEST_NOT_COMPLETED = "QUEST_NOT_COMPLETED"


class QuestEngine:
    """
    Advances user quests from check-in events and handles claims.

    State per user quest: active -> completed -> claimed. Expiry is projected
    at read time from quest.active_until and blocks claims.
    """

    def __init__(self, uow_factory: Optional[Callable[[], UnitOfWork]] = None):
        self.uow_factory = uow_factory

    async def apply_event(self, uow: UnitOfWork, event: CheckInEvent) -> List[QuestProgressDelta]:
        """
        Apply one check-in to every active quest of the user, inside the caller's
        unit of work. Safe to call again with the same event.
        """
        deltas: List[QuestProgressDelta] = []
        user_quests = await uow.quests.list_active_user_quests(event.user_id)

        for uq in user_quests:
            quest = uq.quest
            if not QuestRules.is_within_window(quest.active_from, quest.active_until, event.timestamp):
                continue
            if await uow.quests.is_event_applied(uq.id, event.event_id):
                logger.debug("Event already applied", extra={"user_quest_id": uq.id, "event_id": event.event_id})
                continue

            advance = QuestRules.evaluate(
                quest.requirement, uq.progress, uq.visited_location_ids, event.location_id, event.category
            )
            if not advance.advanced:
                continue

            new_status = UserQuestStatus.COMPLETED.value if advance.completed else UserQuestStatus.ACTIVE.value
            await uow.quests.update_progress(
                uq,
                advance.progress,
                new_status,
                event_id=event.event_id,
                visited_location_ids=advance.visited_location_ids,
                completed_at=event.timestamp if advance.completed else None,
            )

            if advance.completed:
                logger.info("Quest completed", extra={"user_quest_id": uq.id, "quest_id": quest.id})

            deltas.append(
                QuestProgressDelta(
                    user_quest_id=uq.id,
                    quest_id=quest.id,
                    progress=advance.progress,
                    target=QuestRules.target(quest.requirement),
                    status=new_status,
                    completed_now=advance.completed,
                )
            )

        return deltas

    async def process_event(self, event: CheckInEvent) -> List[QuestProgressDelta]:
        """Standalone (re)delivery of an event in its own transaction."""

        async def work(uow):
            return await self.apply_event(uow, event)

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def claim(self, user_id: str, user_quest_id: str, now: Optional[datetime] = None) -> ClaimOutcome:
        now = as_utc(now or utcnow())

        async def work(uow):
            uq = await uow.quests.get_user_quest(user_quest_id)
            if uq is None or uq.user_id != user_id:
                raise UserQuestNotFound(user_quest_id)

            if uq.status == UserQuestStatus.CLAIMED.value:
                return ClaimOutcome(
                    user_quest_id=uq.id, outcome=QuestAlreadyClaimed.code, message="Reward already claimed"
                )
            if QuestRules.is_expired(uq.quest.active_until, now):
                return ClaimOutcome(user_quest_id=uq.id, outcome=QuestExpired.code, message="Quest has expired")
            if uq.status != UserQuestStatus.COMPLETED.value:
                return ClaimOutcome(user_quest_id=uq.id, outcome=QUEST_NOT_COMPLETED, message="Quest not completed yet")

            reward = uq.quest.reward_amount or 0
            # Versioned write first: a concurrent claim loses here and retries into QUEST_ALREADY_CLAIMED
            await uow.quests.mark_claimed(uq, now)
            user = await uow.users.credit_points(user_id, reward)

            logger.info(
                "Quest reward claimed",
                extra={"user_id": user_id, "user_quest_id": uq.id, "points": reward},
            )
            return ClaimOutcome(
                user_quest_id=uq.id,
                outcome=CLAIMED,
                points_awarded=reward,
                total_points=user.total_points,
                message=f"You earned {reward} points!",
            )

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def assign_quest(self, user_id: str, quest_id: str):
        """Quest assignment is normally done upstream; this is for seeding and tooling."""

        async def work(uow):
            for uq in await uow.quests.list_user_quests(user_id):
                if uq.quest_id == quest_id:
                    return uq
            return await uow.quests.assign_quest(user_id, quest_id)

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def list_user_quests(self, user_id: str, now: Optional[datetime] = None) -> List[dict]:
        now = as_utc(now or utcnow())

        async def work(uow):
            return await uow.quests.list_user_quests(user_id)

        user_quests = await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

        views = []
        for uq in user_quests:
            quest = uq.quest
            target = QuestRules.target(quest.requirement)
            views.append(
                {
                    "id": uq.id,
                    "quest_id": quest.id,
                    "title": quest.title,
                    "description": quest.description,
                    "quest_type": quest.quest_type,
                    "requirement_text": QuestRules.describe(quest.requirement),
                    "progress": uq.progress,
                    "target": target,
                    "progress_percent": QuestRules.progress_percent(uq.progress, target),
                    "status": QuestRules.effective_status(uq.status, quest.active_until, now),
                    "reward_amount": quest.reward_amount,
                    "seconds_remaining": QuestRules.seconds_remaining(quest.active_until, now),
                }
            )
        return views
