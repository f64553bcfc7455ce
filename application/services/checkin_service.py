import logging
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.models.checkin import CheckIn
from domain.errors import AlreadyCheckedIn, LocationNotFound, OutOfRange, UserNotFound
from domain.events.checkin_event import CheckInEvent
from domain.models.checkin_result import CheckInOutcome
from domain.ports.unit_of_work import UnitOfWork
from domain.rules.geo_rules import AdmissionRules, GeoRules
from domain.rules.rarity_rules import RarityRules, RarityTier
from domain.rules.time_rules import as_utc, utcnow, window_index
from application.services.quest_engine import QuestEngine
from application.services.transaction import run_in_unit_of_work

logger = logging.getLogger(__name__)


def _resolve_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using the check-in timestamp as given", name)
        return None


class CheckInService:
    """
    The check-in transaction: admission, rarity scoring, the check-in record,
    the point credit, quest advancement, location stats and the reward outbox
    entry all commit together or not at all.
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork], quest_engine: Optional[QuestEngine] = None):
        self.uow_factory = uow_factory
        self.quest_engine = quest_engine or QuestEngine(uow_factory)

    async def check_in(
        self,
        user_id: str,
        location_id: str,
        latitude: float,
        longitude: float,
        now: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
        accuracy_m: Optional[float] = None,
    ) -> CheckInOutcome:
        now = as_utc(now or utcnow())

        async def work(uow):
            return await self._check_in_once(uow, user_id, location_id, latitude, longitude, now, idempotency_key)

        try:
            outcome = await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)
        except AlreadyCheckedIn:
            if not idempotency_key:
                raise
            # Two deliveries of the same attempt raced; the winner's record is the answer
            replay = await self._find_replay(user_id, location_id, latitude, longitude, idempotency_key)
            if replay is None:
                raise
            return replay

        logger.info(
            "Check-in recorded" if not outcome.replayed else "Check-in replayed",
            extra={
                "user_id": user_id,
                "location_id": location_id,
                "check_in_id": outcome.check_in_id,
                "rarity_score": outcome.rarity_score,
                "points": outcome.points_awarded,
                "accuracy_m": accuracy_m,
            },
        )
        return outcome

    async def _check_in_once(
        self,
        uow: UnitOfWork,
        user_id: str,
        location_id: str,
        latitude: float,
        longitude: float,
        now: datetime,
        idempotency_key: Optional[str],
    ) -> CheckInOutcome:
        # 1. Replayed submission
        if idempotency_key:
            existing = await uow.check_ins.find_by_idempotency_key(user_id, idempotency_key)
            if existing is not None:
                return await self._replay_outcome(uow, existing, latitude, longitude)

        user = await uow.users.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)
        location = await uow.locations.get_location(location_id)
        if location is None:
            raise LocationNotFound(location_id)

        # 2. Admission
        distance = GeoRules.distance_km(latitude, longitude, location.latitude, location.longitude)
        if not AdmissionRules.is_admissible(distance, settings.CHECKIN_RADIUS_KM):
            raise OutOfRange(distance, settings.CHECKIN_RADIUS_KM)

        # 3. Scoring
        tz = _resolve_timezone(location.timezone or settings.RARITY_TIMEZONE)
        score = RarityRules.score(location.base_rarity, now, tz)
        tier = RarityRules.tier(score)
        points = RarityRules.points_for(score)

        # 4. One check-in per (user, location, admission window)
        widx = window_index(now, settings.CHECKIN_WINDOW_MINUTES)
        previous = await uow.check_ins.find_in_window(user_id, location_id, widx)
        if previous is not None:
            raise AlreadyCheckedIn(user_id, location_id, previous.id)

        check_in_id = str(uuid.uuid4())
        check_in = await uow.check_ins.create_check_in(
            CheckIn(
                id=check_in_id,
                user_id=user_id,
                location_id=location_id,
                timestamp=now,
                rarity_score=score,
                points_awarded=points,
                window_index=widx,
                idempotency_key=idempotency_key,
                reward_ref=f"pending-{check_in_id}",
            )
        )

        # 5. Credit against the stored total, never a client-held value
        user = await uow.users.credit_points(user_id, points)

        # 6. Quest progress in the same transaction
        event = CheckInEvent(
            event_id=check_in.id,
            user_id=user_id,
            location_id=location_id,
            category=location.category,
            timestamp=now,
        )
        quest_updates = await self.quest_engine.apply_event(uow, event)

        await uow.locations.record_check_in(location_id, now)
        await uow.rewards.enqueue(check_in)

        return CheckInOutcome(
            check_in_id=check_in.id,
            user_id=user_id,
            location_id=location_id,
            location_name=location.name,
            timestamp=now,
            distance_km=distance,
            rarity_score=score,
            tier=tier,
            points_awarded=points,
            total_points=user.total_points,
            level=user.level,
            reward_ref=check_in.reward_ref,
            quest_updates=quest_updates,
        )

    async def _replay_outcome(self, uow: UnitOfWork, existing: CheckIn, latitude: float, longitude: float) -> CheckInOutcome:
        user = await uow.users.get_user(existing.user_id)
        location = await uow.locations.get_location(existing.location_id)
        distance = (
            GeoRules.distance_km(latitude, longitude, location.latitude, location.longitude) if location else 0.0
        )
        return CheckInOutcome(
            check_in_id=existing.id,
            user_id=existing.user_id,
            location_id=existing.location_id,
            location_name=location.name if location else None,
            timestamp=as_utc(existing.timestamp),
            distance_km=distance,
            rarity_score=existing.rarity_score,
            tier=RarityRules.tier(existing.rarity_score),
            points_awarded=existing.points_awarded,
            total_points=user.total_points if user else 0,
            level=user.level if user else 1,
            reward_ref=existing.reward_ref,
            replayed=True,
        )

    async def _find_replay(
        self, user_id: str, location_id: str, latitude: float, longitude: float, idempotency_key: str
    ) -> Optional[CheckInOutcome]:
        async def work(uow):
            existing = await uow.check_ins.find_by_idempotency_key(user_id, idempotency_key)
            if existing is None:
                return None
            return await self._replay_outcome(uow, existing, latitude, longitude)

        return await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

    async def list_collection(self, user_id: str, tier: Optional[RarityTier] = None) -> Dict[str, object]:
        """The user's check-ins, newest first, with per-tier counts."""

        async def work(uow):
            if await uow.users.get_user(user_id) is None:
                raise UserNotFound(user_id)
            return await uow.check_ins.list_check_ins(user_id)

        check_ins = await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

        counts = {t.value: 0 for t in RarityTier}
        items: List[dict] = []
        for c in check_ins:
            c_tier = RarityRules.tier(c.rarity_score)
            counts[c_tier.value] += 1
            if tier is not None and c_tier != tier:
                continue
            items.append(
                {
                    "id": c.id,
                    "location_id": c.location_id,
                    "timestamp": as_utc(c.timestamp),
                    "rarity_score": c.rarity_score,
                    "tier": c_tier.value,
                    "points_awarded": c.points_awarded,
                    "reward_ref": c.reward_ref,
                    "transaction_hash": c.transaction_hash,
                }
            )

        return {"total": len(check_ins), "counts": counts, "items": items}
