import logging
from typing import Optional

import httpx

from app.core.config import settings
from domain.ports.reward_ledger import MintReceipt

logger = logging.getLogger(__name__)


class RewardLedgerError(Exception):
    pass


class HttpRewardLedger:
    """
    Adapter for the mint service sitting in front of the reward contract.
    POST {base_url}/mint with the check-in id as idempotency key, so
    at-least-once delivery from the outbox cannot mint twice.

    One client is kept for the adapter's lifetime; call `aclose()` on shutdown.
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.REWARD_LEDGER_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def mint(self, user_id: str, rarity_score: int, check_in_id: str) -> MintReceipt:
        payload = {"user_id": user_id, "rarity_score": rarity_score, "check_in_id": check_in_id}
        response = await self.client.post("/mint", json=payload, headers={"Idempotency-Key": check_in_id})
        response.raise_for_status()
        data = response.json()

        token_id = data.get("token_id")
        if not token_id:
            raise RewardLedgerError(f"Mint response missing token_id for check-in {check_in_id}")
        tx_hash = data.get("transaction_hash")

        logger.info(
            "Reward minted",
            extra={"check_in_id": check_in_id, "token_id": token_id, "transaction_hash": tx_hash},
        )
        return MintReceipt(token_id=str(token_id), transaction_hash=str(tx_hash) if tx_hash else None)

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.info("Reward ledger client closed")
