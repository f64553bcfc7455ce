from app.models.base import Base
from app.models.checkin import CheckIn
from app.models.location import Location, LocationStats
from app.models.quest import Quest, QuestProgressEvent, UserQuest
from app.models.reward import RewardOutbox
from app.models.user import User

# Export all
__all__ = [
    "Base",
    "User",
    "Location",
    "LocationStats",
    "CheckIn",
    "Quest",
    "UserQuest",
    "QuestProgressEvent",
    "RewardOutbox",
]
