from typing import Protocol

from domain.ports.persistence import CheckInStore, LocationCatalog, QuestStore, RewardOutboxStore, UserStore


class UnitOfWork(Protocol):
    """
    Unit of Work Interface.
    One transaction; repositories share its session.
    """

    users: UserStore
    locations: LocationCatalog
    check_ins: CheckInStore
    quests: QuestStore
    rewards: RewardOutboxStore

    async def __aenter__(self) -> "UnitOfWork": ...

    async def __aexit__(self, exc_type, exc_value, traceback) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
