from datetime import datetime
from typing import Any, List, Optional, Protocol


class UserStore(Protocol):
    async def get_user(self, user_id: str) -> Optional[Any]:
        ...

    async def get_by_wallet(self, wallet_address: str) -> Optional[Any]:
        ...

    async def create_user(self, wallet_address: str) -> Any:
        ...

    async def credit_points(self, user_id: str, delta: int) -> Any:
        """Atomic server-side increment; returns the refreshed user."""
        ...

    async def set_username(self, user_id: str, username: str) -> Any:
        """Raises UsernameConflict when the name is taken."""
        ...


class LocationCatalog(Protocol):
    async def get_location(self, location_id: str) -> Optional[Any]:
        ...

    async def list_locations(self) -> List[Any]:
        ...

    async def record_check_in(self, location_id: str, at_time: datetime) -> None:
        ...


class CheckInStore(Protocol):
    async def create_check_in(self, record: Any) -> Any:
        """Raises AlreadyCheckedIn on a dedup conflict."""
        ...

    async def list_check_ins(self, user_id: str) -> List[Any]:
        ...

    async def find_by_idempotency_key(self, user_id: str, idempotency_key: str) -> Optional[Any]:
        ...

    async def find_in_window(self, user_id: str, location_id: str, window_index: int) -> Optional[Any]:
        ...


class QuestStore(Protocol):
    async def list_active_user_quests(self, user_id: str) -> List[Any]:
        ...

    async def list_user_quests(self, user_id: str) -> List[Any]:
        ...

    async def get_user_quest(self, user_quest_id: str) -> Optional[Any]:
        ...

    async def is_event_applied(self, user_quest_id: str, event_id: str) -> bool:
        ...

    async def update_progress(
        self, user_quest: Any, new_progress: int, new_status: str, event_id: Optional[str] = None, **fields
    ) -> Any:
        ...

    async def mark_claimed(self, user_quest: Any, at_time: datetime) -> Any:
        ...


class RewardOutboxStore(Protocol):
    async def enqueue(self, check_in: Any) -> Any:
        ...

    async def list_pending(self, limit: int = 20) -> List[Any]:
        ...

    async def mark_sent(self, entry_id: str, token_id: str, transaction_hash: Optional[str] = None) -> None:
        ...

    async def mark_failed(self, entry_id: str, error: str, max_attempts: int) -> Any:
        ...
