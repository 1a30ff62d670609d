"""Event log model for the admin audit trail."""

import enum
from datetime import datetime

from sqlalchemy import Integer, String, DateTime, Enum, Text, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class ActionType(str, enum.Enum):
    """Types of admin actions that are logged."""

    CREATE_COHORT = "create_cohort"
    UPDATE_COHORT = "update_cohort"
    ACTIVATE_COHORT = "activate_cohort"
    DEACTIVATE_COHORT = "deactivate_cohort"
    DELETE_COHORT = "delete_cohort"
    CREATE_MEAL_PROGRAM = "create_meal_program"
    UPDATE_MEAL_PROGRAM = "update_meal_program"
    DELETE_MEAL_PROGRAM = "delete_meal_program"
    DUPLICATE_MEAL_PROGRAM = "duplicate_meal_program"
    CREATE_MEAL_OPTION = "create_meal_option"
    UPDATE_MEAL_OPTION = "update_meal_option"
    ADD_PARTICIPANT = "add_participant"
    UPDATE_PARTICIPANT = "update_participant"
    REMOVE_PARTICIPANT = "remove_participant"
    DELETE_PARTICIPANT = "delete_participant"


class EventLog(Base):
    """Audit trail for admin mutations."""

    __tablename__ = "event_log"
    __table_args__ = (Index("ix_event_log_timestamp", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    action_type: Mapped[ActionType] = mapped_column(
        Enum(ActionType, values_callable=lambda x: [e.value for e in x], native_enum=False, length=50),
        nullable=False,
    )
    input_summary: Mapped[str] = mapped_column(Text, nullable=False)
    output_summary: Mapped[str] = mapped_column(Text, nullable=False)
    related_ids: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<EventLog(id={self.id}, action={self.action_type.value})>"
