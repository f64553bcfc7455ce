from typing import Optional

from fastapi import APIRouter, HTTPException, status

from app.core.container import container
from app.schemas.api_schemas import UserResponse, UsernameUpdate, WalletAssociation
from domain.rules.rarity_rules import RarityTier

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse)
async def associate_wallet(body: WalletAssociation):
    return await container.user_service.get_or_create_by_wallet(body.wallet_address)


@router.get("/{user_id}")
async def get_profile(user_id: str):
    return await container.user_service.get_profile(user_id)


@router.put("/{user_id}/username", response_model=UserResponse)
async def update_username(user_id: str, body: UsernameUpdate):
    return await container.user_service.set_username(user_id, body.username)


@router.get("/{user_id}/checkins")
async def get_collection(user_id: str, tier: Optional[str] = None):
    rarity = None
    if tier and tier.lower() != "all":
        try:
            rarity = RarityTier(tier.upper())
        except ValueError:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown tier '{tier}'")
    return await container.checkin_service.list_collection(user_id, rarity)


@router.get("/{user_id}/quests")
async def get_quests(user_id: str):
    return await container.quest_engine.list_user_quests(user_id)


@router.post("/{user_id}/quests/{user_quest_id}/claim")
async def claim_quest(user_id: str, user_quest_id: str):
    return await container.quest_engine.claim(user_id, user_quest_id)
