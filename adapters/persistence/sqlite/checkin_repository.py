import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from adapters.persistence.sqlite.base_repository import SqlAlchemyRepository
from app.models.checkin import CheckIn
from domain.errors import AlreadyCheckedIn

logger = logging.getLogger(__name__)


class CheckInRepository(SqlAlchemyRepository[CheckIn]):
    def __init__(self, session):
        super().__init__(session, CheckIn)

    async def create_check_in(self, record: CheckIn) -> CheckIn:
        """
        Insert guarded by the (user, location, window) and (user, idempotency_key)
        unique constraints. The transaction is unusable after a conflict.
        """
        try:
            return await self.add(record)
        except IntegrityError as e:
            logger.info(
                "Duplicate check-in rejected by storage",
                extra={"user_id": record.user_id, "location_id": record.location_id},
            )
            raise AlreadyCheckedIn(record.user_id, record.location_id) from e

    async def list_check_ins(self, user_id: str) -> List[CheckIn]:
        stmt = select(CheckIn).where(CheckIn.user_id == user_id).order_by(CheckIn.timestamp.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[CheckIn]:
        stmt = select(CheckIn).where(CheckIn.user_id == user_id, CheckIn.idempotency_key == idempotency_key)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_in_window(self, user_id: str, location_id: str, window_index: int) -> Optional[CheckIn]:
        stmt = select(CheckIn).where(
            CheckIn.user_id == user_id,
            CheckIn.location_id == location_id,
            CheckIn.window_index == window_index,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
