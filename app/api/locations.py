from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from app.core.container import container

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.get("")
async def list_nearby(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
):
    return await container.location_service.list_nearby(latitude, longitude, limit)


@router.get("/{location_id}/stats")
async def location_stats(location_id: str):
    stats = await container.location_service.get_stats(location_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="No check-ins recorded for this location")
    return stats
