from typing import Any, Dict, Optional


class GameError(Exception):
    """Base for every error the check-in core reports to callers."""

    code = "GAME_ERROR"
    retryable = False

    def __init__(self, message: str = "", detail: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class OutOfRange(GameError):
    code = "OUT_OF_RANGE"

    def __init__(self, distance_km: float, threshold_km: float):
        super().__init__(
            f"You need to be within {threshold_km * 1000:.0f} meters of this location to check in. "
            f"You are {distance_km * 1000:.0f} meters away.",
            {"distance_km": distance_km, "threshold_km": threshold_km},
        )
        self.distance_km = distance_km
        self.threshold_km = threshold_km


class LocationNotFound(GameError):
    code = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        super().__init__(f"Location {location_id} not found", {"location_id": location_id})


class UserNotFound(GameError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found", {"user_id": user_id})


class UserQuestNotFound(GameError):
    code = "USER_QUEST_NOT_FOUND"

    def __init__(self, user_quest_id: str):
        super().__init__(f"Quest {user_quest_id} not found for user", {"user_quest_id": user_quest_id})


class AlreadyCheckedIn(GameError):
    code = "ALREADY_CHECKED_IN"

    def __init__(self, user_id: str, location_id: str, existing_check_in_id: Optional[str] = None):
        super().__init__(
            "Already checked in at this location recently",
            {"user_id": user_id, "location_id": location_id, "check_in_id": existing_check_in_id},
        )


class UsernameConflict(GameError):
    code = "USERNAME_CONFLICT"

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' is already taken", {"username": username})


class QuestAlreadyClaimed(GameError):
    code = "QUEST_ALREADY_CLAIMED"


class QuestExpired(GameError):
    code = "QUEST_EXPIRED"


class PersistenceConflict(GameError):
    """Lost an optimistic-concurrency race; safe to retry the whole unit of work."""

    code = "PERSISTENCE_CONFLICT"
    retryable = True


class PersistenceFailure(GameError):
    code = "PERSISTENCE_FAILURE"
