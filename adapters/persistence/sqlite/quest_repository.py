from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from adapters.persistence.sqlite.base_repository import SqlAlchemyRepository
from app.models.quest import Quest, QuestProgressEvent, UserQuest, UserQuestStatus


class QuestRepository(SqlAlchemyRepository[UserQuest]):
    def __init__(self, session):
        super().__init__(session, UserQuest)

    async def list_active_user_quests(self, user_id: str) -> List[UserQuest]:
        stmt = (
            select(UserQuest)
            .join(UserQuest.quest)
            .where(UserQuest.user_id == user_id, UserQuest.status == UserQuestStatus.ACTIVE.value)
            .order_by(Quest.active_until.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_user_quests(self, user_id: str) -> List[UserQuest]:
        stmt = select(UserQuest).where(UserQuest.user_id == user_id).order_by(UserQuest.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def get_user_quest(self, user_quest_id: str) -> Optional[UserQuest]:
        return await self.get(user_quest_id)

    async def assign_quest(self, user_id: str, quest_id: str) -> UserQuest:
        return await self.add(UserQuest(user_id=user_id, quest_id=quest_id))

    async def is_event_applied(self, user_quest_id: str, event_id: str) -> bool:
        marker = await self.session.get(QuestProgressEvent, (user_quest_id, event_id))
        return marker is not None

    async def update_progress(
        self,
        user_quest: UserQuest,
        new_progress: int,
        new_status: str,
        event_id: Optional[str] = None,
        visited_location_ids: Optional[List[str]] = None,
        completed_at: Optional[datetime] = None,
    ) -> UserQuest:
        """
        Versioned write: a concurrent writer makes flush raise StaleDataError.
        The event marker lands in the same flush.
        """
        user_quest.progress = new_progress
        user_quest.status = new_status
        if visited_location_ids is not None:
            user_quest.visited_location_ids = list(visited_location_ids)
        if completed_at is not None:
            user_quest.completed_at = completed_at
        if event_id is not None:
            self.session.add(QuestProgressEvent(user_quest_id=user_quest.id, event_id=event_id))
        await self.session.flush()
        return user_quest

    async def mark_claimed(self, user_quest: UserQuest, at_time: datetime) -> UserQuest:
        user_quest.status = UserQuestStatus.CLAIMED.value
        user_quest.claimed_at = at_time
        await self.session.flush()
        return user_quest
