from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update

from adapters.persistence.sqlite.base_repository import SqlAlchemyRepository
from app.models.location import Location, LocationStats


class LocationRepository(SqlAlchemyRepository[Location]):
    def __init__(self, session):
        super().__init__(session, Location)

    async def get_location(self, location_id: str) -> Optional[Location]:
        return await self.get(location_id)

    async def list_locations(self) -> List[Location]:
        result = await self.session.execute(select(Location).order_by(Location.name))
        return list(result.scalars().all())

    async def get_stats(self, location_id: str) -> Optional[LocationStats]:
        return await self.session.get(LocationStats, location_id, populate_existing=True)

    async def record_check_in(self, location_id: str, at_time: datetime) -> None:
        stmt = (
            update(LocationStats)
            .where(LocationStats.location_id == location_id)
            .values(total_check_ins=LocationStats.total_check_ins + 1, last_check_in=at_time)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            self.session.add(LocationStats(location_id=location_id, total_check_ins=1, last_check_in=at_time))
            await self.session.flush()
