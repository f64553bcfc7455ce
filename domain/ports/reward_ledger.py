from typing import Optional, Protocol

from pydantic import BaseModel


class MintReceipt(BaseModel):
    token_id: str
    transaction_hash: Optional[str] = None


class RewardLedgerPort(Protocol):
    """
    External reward ledger (on-chain mint / token credit).
    Called after commit; its failures never roll back a check-in.
    """

    async def mint(self, user_id: str, rarity_score: int, check_in_id: str) -> MintReceipt:
        ...

    async def aclose(self) -> None:
        ...
