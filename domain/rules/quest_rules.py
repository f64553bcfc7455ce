import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from math import floor
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError

from domain.rules.time_rules import as_utc

logger = logging.getLogger(__name__)


class UserQuestStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CLAIMED = "claimed"
    EXPIRED = "expired"  # read-time projection only, never stored


class VisitCountRequirement(BaseModel):
    quest_type: Literal["visit_count"] = "visit_count"
    count: int = Field(ge=1)


class VisitCategoryRequirement(BaseModel):
    quest_type: Literal["visit_category"] = "visit_category"
    category: str
    count: int = Field(ge=1)


class VisitSpecificRequirement(BaseModel):
    quest_type: Literal["visit_specific"] = "visit_specific"
    location_ids: List[str] = Field(
        min_length=1, validation_alias=AliasChoices("location_ids", "locations")
    )


class UnknownRequirement(BaseModel):
    """Anything we cannot decode. Never advances."""

    quest_type: Optional[str] = None
    raw: Any = None


KnownRequirement = Annotated[
    Union[VisitCountRequirement, VisitCategoryRequirement, VisitSpecificRequirement],
    Field(discriminator="quest_type"),
]
Requirement = Union[VisitCountRequirement, VisitCategoryRequirement, VisitSpecificRequirement, UnknownRequirement]

_requirement_adapter = TypeAdapter(KnownRequirement)


@dataclass
class QuestAdvance:
    advanced: bool
    progress: int
    visited_location_ids: List[str] = field(default_factory=list)
    completed: bool = False


class QuestRules:
    @staticmethod
    def parse_requirement(quest_type: Optional[str], payload: Any, quest_id: Optional[str] = None) -> Requirement:
        data = dict(payload) if isinstance(payload, dict) else {}
        data["quest_type"] = quest_type
        try:
            return _requirement_adapter.validate_python(data)
        except ValidationError as e:
            logger.warning(
                "Data integrity: undecodable quest requirement, quest will not advance",
                extra={"quest_id": quest_id, "quest_type": quest_type, "errors": e.error_count()},
            )
            return UnknownRequirement(quest_type=quest_type, raw=payload)

    @staticmethod
    def target(requirement: Requirement) -> int:
        if isinstance(requirement, (VisitCountRequirement, VisitCategoryRequirement)):
            return requirement.count
        if isinstance(requirement, VisitSpecificRequirement):
            return len(set(requirement.location_ids))
        return 0

    @staticmethod
    def evaluate(
        requirement: Requirement,
        progress: int,
        visited_location_ids: Optional[List[str]],
        location_id: str,
        category: Optional[str],
    ) -> QuestAdvance:
        """Apply one qualifying check-in to a quest's progress. Pure."""
        visited = list(visited_location_ids or [])
        target = QuestRules.target(requirement)

        if isinstance(requirement, VisitCountRequirement):
            new_progress = progress + 1
        elif isinstance(requirement, VisitCategoryRequirement):
            if category != requirement.category:
                return QuestAdvance(False, progress, visited, target > 0 and progress >= target)
            new_progress = progress + 1
        elif isinstance(requirement, VisitSpecificRequirement):
            required = set(requirement.location_ids)
            if location_id not in required or location_id in visited:
                return QuestAdvance(False, progress, visited, target > 0 and progress >= target)
            visited.append(location_id)
            new_progress = len(required.intersection(visited))
        else:
            logger.warning(
                "Data integrity: unknown quest type ignored",
                extra={"quest_type": getattr(requirement, "quest_type", None)},
            )
            return QuestAdvance(False, progress, visited, False)

        return QuestAdvance(True, new_progress, visited, new_progress >= target)

    @staticmethod
    def is_within_window(active_from: datetime, active_until: datetime, at_time: datetime) -> bool:
        return as_utc(active_from) <= as_utc(at_time) < as_utc(active_until)

    @staticmethod
    def is_expired(active_until: datetime, now: datetime) -> bool:
        return as_utc(now) >= as_utc(active_until)

    @staticmethod
    def effective_status(status: str, active_until: datetime, now: datetime) -> str:
        if status in (UserQuestStatus.ACTIVE.value, UserQuestStatus.COMPLETED.value) and QuestRules.is_expired(
            active_until, now
        ):
            return UserQuestStatus.EXPIRED.value
        return status

    @staticmethod
    def progress_percent(progress: int, target: int) -> int:
        """Display only; stored progress is never clamped."""
        if target <= 0:
            return 0
        return floor(min(progress / target, 1.0) * 100)

    @staticmethod
    def seconds_remaining(active_until: datetime, now: datetime) -> int:
        return max(0, int((as_utc(active_until) - as_utc(now)).total_seconds()))

    @staticmethod
    def describe(requirement: Requirement) -> str:
        if isinstance(requirement, VisitCountRequirement):
            return f"Visit {requirement.count} locations"
        if isinstance(requirement, VisitCategoryRequirement):
            return f"Visit {requirement.count} {requirement.category} locations"
        if isinstance(requirement, VisitSpecificRequirement):
            return "Visit specific locations"
        return "Complete the quest"
