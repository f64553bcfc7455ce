from fastapi import APIRouter, Header, status
from typing import Optional

from app.core.container import container
from app.schemas.api_schemas import CheckInRequest
from domain.models.checkin_result import CheckInOutcome

router = APIRouter(tags=["Check-ins"])


@router.post("/checkins", response_model=CheckInOutcome, status_code=status.HTTP_201_CREATED)
async def create_check_in(body: CheckInRequest, idempotency_key: Optional[str] = Header(default=None)):
    return await container.checkin_service.check_in(
        body.user_id,
        body.location_id,
        body.latitude,
        body.longitude,
        idempotency_key=body.idempotency_key or idempotency_key,
        accuracy_m=body.accuracy_m,
    )
