"""Cohort ("challenge") model."""

from datetime import date

from sqlalchemy import String, Integer, Date, Boolean, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..schedule import DEFAULT_DURATION_WEEKS, end_date_for
from .base import Base, TimestampMixin, new_id


class Cohort(Base, TimestampMixin):
    """A time-boxed enrollment group sharing a start date and duration.

    end_date is stored for the mobile client but always derived from
    start_date and duration_weeks through reschedule().
    """

    __tablename__ = "cohorts"
    __table_args__ = (
        # At most one active cohort system-wide
        Index(
            "uq_cohorts_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_weeks: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_DURATION_WEEKS, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    meal_program_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("meal_programs.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    meal_program: Mapped["MealProgram"] = relationship(
        "MealProgram", back_populates="cohorts"
    )
    enrollments: Mapped[list["CohortParticipant"]] = relationship(
        "CohortParticipant", back_populates="cohort", cascade="all, delete-orphan"
    )

    def __init__(self, **kwargs):
        if "end_date" not in kwargs and "start_date" in kwargs:
            kwargs.setdefault("duration_weeks", DEFAULT_DURATION_WEEKS)
            kwargs["end_date"] = end_date_for(kwargs["start_date"], kwargs["duration_weeks"])
        super().__init__(**kwargs)

    def reschedule(self, start_date: date, duration_weeks: int) -> None:
        """Set start and duration, recomputing the end date."""
        self.start_date = start_date
        self.duration_weeks = duration_weeks
        self.end_date = end_date_for(start_date, duration_weeks)

    def __repr__(self) -> str:
        return f"<Cohort(id={self.id}, name='{self.name}', active={self.is_active})>"
