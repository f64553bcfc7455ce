import logging
from typing import Callable, Optional

from app.core.config import settings
from app.models.quest import UserQuestStatus
from domain.errors import UserNotFound
from domain.ports.unit_of_work import UnitOfWork
from application.services.transaction import run_in_unit_of_work

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def get_or_create_by_wallet(self, wallet_address: str):
        """First wallet association creates the user; later ones return it."""

        async def work(uow):
            user = await uow.users.get_by_wallet(wallet_address)
            if user is None:
                user = await uow.users.create_user(wallet_address)
                logger.info("New user registered", extra={"user_id": user.id})
            return user

        # A concurrent first login loses on the unique wallet constraint and
        # finds the winner's row on retry
        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def get_user(self, user_id: str):
        async def work(uow):
            return await uow.users.get_user(user_id)

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def set_username(self, user_id: str, username: str):
        async def work(uow):
            return await uow.users.set_username(user_id, username.strip())

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def credit_points(self, user_id: str, delta: int):
        if delta < 0:
            raise ValueError("total_points never decreases")

        async def work(uow):
            return await uow.users.credit_points(user_id, delta)

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def get_profile(self, user_id: str) -> dict:
        async def work(uow):
            user = await uow.users.get_user(user_id)
            if user is None:
                raise UserNotFound(user_id)
            check_ins = await uow.check_ins.list_check_ins(user_id)
            quests = await uow.quests.list_user_quests(user_id)
            return user, check_ins, quests

        user, check_ins, quests = await run_in_unit_of_work(
            self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES
        )
        finished = {UserQuestStatus.COMPLETED.value, UserQuestStatus.CLAIMED.value}
        return {
            "id": user.id,
            "wallet_address": user.wallet_address,
            "username": user.username,
            "level": user.level,
            "total_points": user.total_points,
            "check_in_count": len(check_ins),
            "quests_completed": sum(1 for q in quests if q.status in finished),
        }
