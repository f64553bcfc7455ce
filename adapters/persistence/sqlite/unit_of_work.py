import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from adapters.persistence.sqlite.checkin_repository import CheckInRepository
from adapters.persistence.sqlite.location_repository import LocationRepository
from adapters.persistence.sqlite.quest_repository import QuestRepository
from adapters.persistence.sqlite.reward_repository import RewardOutboxRepository
from adapters.persistence.sqlite.user_repository import UserRepository
from domain.errors import PersistenceConflict, PersistenceFailure
from domain.ports.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def translate_db_error(exc: SQLAlchemyError) -> Exception:
    """Map driver/ORM errors onto the retryable / terminal split."""
    if isinstance(exc, (StaleDataError, IntegrityError)):
        return PersistenceConflict(f"Concurrent update: {exc.__class__.__name__}")
    if isinstance(exc, OperationalError) and "locked" in str(exc).lower():
        return PersistenceConflict("Database is locked")
    return PersistenceFailure(f"Storage error: {exc.__class__.__name__}")


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session_factory, level_step: int = 1000):
        self.session_factory = session_factory
        self.level_step = level_step
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self):
        self.session = self.session_factory()
        self.users = UserRepository(self.session, level_step=self.level_step)
        self.locations = LocationRepository(self.session)
        self.check_ins = CheckInRepository(self.session)
        self.quests = QuestRepository(self.session)
        self.rewards = RewardOutboxRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        try:
            if exc_type:
                await self.rollback()
            else:
                await self.commit()
        finally:
            await self.session.close()

        if isinstance(exc_value, SQLAlchemyError):
            logger.warning("Unit of work rolled back: %s", exc_value.__class__.__name__)
            raise translate_db_error(exc_value) from exc_value

    async def commit(self):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise translate_db_error(e) from e

    async def rollback(self):
        await self.session.rollback()
