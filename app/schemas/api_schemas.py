from typing import Optional

from pydantic import BaseModel, Field


class WalletAssociation(BaseModel):
    wallet_address: str = Field(min_length=4, max_length=128)


class UsernameUpdate(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class CheckInRequest(BaseModel):
    user_id: str
    location_id: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy_m: Optional[float] = Field(default=None, ge=0)
    idempotency_key: Optional[str] = Field(default=None, max_length=128)


class UserResponse(BaseModel):
    id: str
    wallet_address: str
    username: Optional[str] = None
    level: int
    total_points: int

    model_config = {"from_attributes": True}
