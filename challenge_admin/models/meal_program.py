"""Meal program templates and their lunch/dinner options."""

import enum
from datetime import date

from sqlalchemy import String, Integer, Text, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, new_id


class MealType(str, enum.Enum):
    """Meal slots a program offers each day."""

    LUNCH = "lunch"
    DINNER = "dinner"


class MealChoice(str, enum.Enum):
    """The two alternatives of a meal option."""

    A = "A"
    B = "B"


# Fields copied when a program is duplicated
OPTION_COPY_FIELDS = (
    "challenge_week",
    "challenge_day",
    "day_of_week",
    "week_start_date",
    "meal_type",
    "option_a_name",
    "option_a_description",
    "option_a_image_url",
    "option_b_name",
    "option_b_description",
    "option_b_image_url",
)


class MealProgram(Base, TimestampMixin):
    """Reusable 7-day x N-week template of lunch/dinner A/B choices."""

    __tablename__ = "meal_programs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    options: Mapped[list["MealOption"]] = relationship(
        "MealOption", back_populates="program", cascade="all, delete-orphan"
    )
    cohorts: Mapped[list["Cohort"]] = relationship("Cohort", back_populates="meal_program")

    def __repr__(self) -> str:
        return f"<MealProgram(id={self.id}, name='{self.name}')>"


class MealOption(Base, TimestampMixin):
    """One lunch-or-dinner slot of a program, offering two named alternatives."""

    __tablename__ = "meal_options"
    __table_args__ = (
        UniqueConstraint(
            "meal_program_id", "challenge_week", "challenge_day", "meal_type",
            name="uq_meal_options_program_slot",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    meal_program_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("meal_programs.id", ondelete="CASCADE"), nullable=False
    )
    challenge_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    challenge_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Calendar-based columns kept for rows created before programs were week-numbered
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    meal_type: Mapped[str] = mapped_column(String(20), nullable=False)
    option_a_name: Mapped[str] = mapped_column(String(255), nullable=False)
    option_a_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_a_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    option_b_name: Mapped[str] = mapped_column(String(255), nullable=False)
    option_b_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_b_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Relationships
    program: Mapped["MealProgram"] = relationship("MealProgram", back_populates="options")

    def name_for(self, choice: str) -> str | None:
        """Display name of the alternative picked by an A/B choice code."""
        if choice == MealChoice.A.value:
            return self.option_a_name
        if choice == MealChoice.B.value:
            return self.option_b_name
        return None

    def copy_fields(self) -> dict:
        return {field: getattr(self, field) for field in OPTION_COPY_FIELDS}

    def __repr__(self) -> str:
        return (
            f"<MealOption(id={self.id}, week={self.challenge_week}, "
            f"day={self.challenge_day}, type='{self.meal_type}')>"
        )
