import logging
from typing import Callable, Dict, Optional

from app.core.config import settings
from domain.ports.reward_ledger import RewardLedgerPort
from domain.ports.unit_of_work import UnitOfWork
from application.services.transaction import run_in_unit_of_work

logger = logging.getLogger(__name__)


class RewardDispatcher:
    """
    Drains the reward outbox into the external ledger, at least once.
    Ledger failures stay on the outbox row; committed check-ins and points
    are never touched.
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork], ledger: RewardLedgerPort):
        self.uow_factory = uow_factory
        self.ledger = ledger

    async def dispatch_pending(self, limit: Optional[int] = None) -> Dict[str, int]:
        limit = limit or settings.REWARD_BATCH_SIZE

        async def load(uow):
            entries = await uow.rewards.list_pending(limit)
            return [(e.id, e.user_id, e.rarity_score, e.check_in_id) for e in entries]

        pending = await run_in_unit_of_work(self.uow_factory, load, settings.PERSISTENCE_MAX_RETRIES)
        summary = {"sent": 0, "failed": 0}

        for entry_id, user_id, rarity_score, check_in_id in pending:
            try:
                receipt = await self.ledger.mint(user_id, rarity_score, check_in_id)
            except Exception as e:
                logger.warning(
                    "Reward mint failed, will retry",
                    extra={"check_in_id": check_in_id, "error": str(e)},
                    exc_info=True,
                )
                error = f"{e.__class__.__name__}: {e}"

                async def record_failure(uow, entry_id=entry_id, error=error):
                    return await uow.rewards.mark_failed(entry_id, error, settings.REWARD_MAX_ATTEMPTS)

                await run_in_unit_of_work(self.uow_factory, record_failure, settings.PERSISTENCE_MAX_RETRIES)
                summary["failed"] += 1
                continue

            async def record_success(uow, entry_id=entry_id, receipt=receipt):
                await uow.rewards.mark_sent(entry_id, receipt.token_id, receipt.transaction_hash)

            await run_in_unit_of_work(self.uow_factory, record_success, settings.PERSISTENCE_MAX_RETRIES)
            summary["sent"] += 1

        if pending:
            logger.info("Reward outbox drained", extra=summary)
        return summary

    async def aclose(self) -> None:
        await self.ledger.aclose()
