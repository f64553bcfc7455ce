import enum
import uuid

from sqlalchemy import (
    Column,
    String,
    Integer,
    JSON,
    ForeignKey,
    DateTime,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, relationship, reconstructor
from sqlalchemy.sql import func

from app.models.base import Base
from domain.rules.quest_rules import QuestRules, Requirement, UserQuestStatus


class QuestType(str, enum.Enum):
    VISIT_COUNT = "visit_count"
    VISIT_CATEGORY = "visit_category"
    VISIT_SPECIFIC = "visit_specific"


class Quest(Base):
    __tablename__ = "quests"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)

    quest_type = Column(String, nullable=False)
    requirements = Column(JSON, nullable=False, default=dict)
    reward_amount = Column(Integer, default=0, nullable=False)

    # Half-open window [active_from, active_until)
    active_from = Column(DateTime(timezone=True), nullable=False)
    active_until = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @reconstructor
    def _decode_requirement(self):
        self._requirement = QuestRules.parse_requirement(self.quest_type, self.requirements, quest_id=self.id)

    @property
    def requirement(self) -> Requirement:
        # Rows built in-process skip the reconstructor
        if getattr(self, "_requirement", None) is None:
            self._decode_requirement()
        return self._requirement


class UserQuest(Base):
    __tablename__ = "user_quests"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    quest_id = Column(String, ForeignKey("quests.id"), nullable=False)

    progress = Column(Integer, default=0, nullable=False)
    status = Column(String, default=UserQuestStatus.ACTIVE.value, nullable=False)
    visited_location_ids = Column(JSON, nullable=False, default=list)  # visit_specific only

    completed_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    version = Column(Integer, nullable=False)

    quest: Mapped["Quest"] = relationship("Quest", lazy="joined")

    __table_args__ = (UniqueConstraint("user_id", "quest_id", name="uq_user_quest"),)
    __mapper_args__ = {"version_id_col": version}


class QuestProgressEvent(Base):
    """Marks a check-in event as applied to a user quest."""

    __tablename__ = "quest_progress_events"

    user_quest_id = Column(String, ForeignKey("user_quests.id"), primary_key=True)
    event_id = Column(String, primary_key=True)
    applied_at = Column(DateTime(timezone=True), server_default=func.now())
