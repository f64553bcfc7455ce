from typing import List, Optional

from sqlalchemy import select

from adapters.persistence.sqlite.base_repository import SqlAlchemyRepository
from app.models.checkin import CheckIn
from app.models.reward import RewardOutbox, RewardStatus


class RewardOutboxRepository(SqlAlchemyRepository[RewardOutbox]):
    def __init__(self, session):
        super().__init__(session, RewardOutbox)

    async def enqueue(self, check_in: CheckIn) -> RewardOutbox:
        entry = RewardOutbox(
            check_in_id=check_in.id,
            user_id=check_in.user_id,
            rarity_score=check_in.rarity_score,
            status=RewardStatus.PENDING.value,
        )
        return await self.add(entry)

    async def list_pending(self, limit: int = 20) -> List[RewardOutbox]:
        stmt = (
            select(RewardOutbox)
            .where(RewardOutbox.status == RewardStatus.PENDING.value)
            .order_by(RewardOutbox.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_sent(self, entry_id: str, token_id: str, transaction_hash: Optional[str] = None) -> None:
        entry = await self.get(entry_id)
        entry.status = RewardStatus.SENT.value
        entry.token_id = token_id
        entry.attempts += 1
        entry.last_error = None

        check_in = await self.session.get(CheckIn, entry.check_in_id)
        if check_in is not None:
            check_in.reward_ref = token_id
            check_in.transaction_hash = transaction_hash
        await self.session.flush()

    async def mark_failed(self, entry_id: str, error: str, max_attempts: int) -> RewardOutbox:
        entry = await self.get(entry_id)
        entry.attempts += 1
        entry.last_error = error[:500]
        if entry.attempts >= max_attempts:
            entry.status = RewardStatus.FAILED.value
        await self.session.flush()
        return entry
