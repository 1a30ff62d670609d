"""Read-only habit telemetry produced by the mobile app."""

import datetime

from sqlalchemy import String, Integer, Float, Date, DateTime, Boolean, Text, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, new_id, utcnow


class DailyHabit(Base, TimestampMixin):
    """One day of logged habits for a participant."""

    __tablename__ = "daily_habits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    steps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    steps_logged_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)
    water_ml: Mapped[int | None] = mapped_column(Integer, nullable=True)
    water_logged_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight_logged_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)
    meal_adherence: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    meal_logged_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)


class CheckIn(Base):
    """Daily reflection submitted by a participant."""

    __tablename__ = "check_ins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    challenges_faced: Mapped[str] = mapped_column(Text, nullable=False)
    habits_summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Streak(Base, TimestampMixin):
    """Check-in streak counters, one row per participant."""

    __tablename__ = "streaks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    current_streak: Mapped[int | None] = mapped_column(Integer, default=0, nullable=True)
    longest_streak: Mapped[int | None] = mapped_column(Integer, default=0, nullable=True)
    last_check_in_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)


class WeeklyExercise(Base, TimestampMixin):
    """Whether a participant exercised three times in a calendar week."""

    __tablename__ = "weekly_exercise"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    week_start_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    completed_3x: Mapped[bool | None] = mapped_column(Boolean, default=False, nullable=True)
