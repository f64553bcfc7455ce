from typing import Optional

from adapters.ledger.http_ledger import HttpRewardLedger
from adapters.persistence.sqlite.unit_of_work import SqlAlchemyUnitOfWork
from app.core.config import settings
from application.services.checkin_service import CheckInService
from application.services.location_service import LocationService
from application.services.quest_engine import QuestEngine
from application.services.reward_dispatcher import RewardDispatcher
from application.services.user_service import UserService


class Container:
    def __init__(self, session_factory=None):
        self._session_factory = session_factory
        self._reset()

    def _reset(self):
        # Lazy Singletons
        self._user_service = None
        self._quest_engine = None
        self._checkin_service = None
        self._location_service = None
        self._reward_dispatcher = None

    def configure(self, session_factory=None, ledger=None):
        """Rebind to another database (tests, scripts)."""
        self._session_factory = session_factory
        self._reset()
        if ledger is not None:
            self._reward_dispatcher = RewardDispatcher(self.uow_factory, ledger)

    @property
    def session_factory(self):
        if self._session_factory is None:
            from app.core.database import AsyncSessionLocal

            self._session_factory = AsyncSessionLocal
        return self._session_factory

    def uow_factory(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory, level_step=settings.LEVEL_POINTS_STEP)

    @property
    def user_service(self) -> UserService:
        if not self._user_service:
            self._user_service = UserService(self.uow_factory)
        return self._user_service

    @property
    def quest_engine(self) -> QuestEngine:
        if not self._quest_engine:
            self._quest_engine = QuestEngine(self.uow_factory)
        return self._quest_engine

    @property
    def checkin_service(self) -> CheckInService:
        if not self._checkin_service:
            self._checkin_service = CheckInService(self.uow_factory, self.quest_engine)
        return self._checkin_service

    @property
    def location_service(self) -> LocationService:
        if not self._location_service:
            self._location_service = LocationService(self.uow_factory)
        return self._location_service

    @property
    def reward_dispatcher(self) -> Optional[RewardDispatcher]:
        if not self._reward_dispatcher and settings.REWARD_LEDGER_URL:
            self._reward_dispatcher = RewardDispatcher(self.uow_factory, HttpRewardLedger(settings.REWARD_LEDGER_URL))
        return self._reward_dispatcher


# Global Container Instance
container = Container()
