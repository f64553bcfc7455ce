from typing import Callable, List, Optional

from app.core.config import settings
from domain.ports.unit_of_work import UnitOfWork
from domain.rules.geo_rules import AdmissionRules, GeoRules
from domain.rules.rarity_rules import RarityRules
from application.services.transaction import run_in_unit_of_work


class LocationService:
    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def list_nearby(self, latitude: float, longitude: float, limit: Optional[int] = None) -> List[dict]:
        """Catalog locations annotated with distance, nearest first."""

        async def work(uow):
            return await uow.locations.list_locations()

        locations = await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)

        annotated = []
        for loc in locations:
            distance = GeoRules.distance_km(latitude, longitude, loc.latitude, loc.longitude)
            annotated.append(
                {
                    "id": loc.id,
                    "name": loc.name,
                    "description": loc.description,
                    "address": loc.address,
                    "latitude": loc.latitude,
                    "longitude": loc.longitude,
                    "category": loc.category,
                    "base_rarity": loc.base_rarity,
                    # Daytime tier, as shown before checking in
                    "base_tier": RarityRules.tier((loc.base_rarity or 1) * RarityRules.BASE_MULTIPLIER).value,
                    "distance_km": distance,
                    "in_range": AdmissionRules.is_admissible(distance, settings.CHECKIN_RADIUS_KM),
                }
            )

        annotated.sort(key=lambda item: item["distance_km"])
        return annotated[:limit] if limit else annotated

    async def get_stats(self, location_id: str) -> Optional[dict]:
        async def work(uow):
            return await uow.locations.get_stats(location_id)

        stats = await run_in_unit_of_work(self.uow_factory, work, settings.PERSISTENCE_MAX_RETRIES)
        if stats is None:
            return None
        return {
            "location_id": stats.location_id,
            "total_check_ins": stats.total_check_ins,
            "last_check_in": stats.last_check_in,
        }
