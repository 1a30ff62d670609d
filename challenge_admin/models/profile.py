"""Participant profile model."""

import enum

from sqlalchemy import String, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Role(str, enum.Enum):
    """Account roles. Only super_admin and viewer may use the dashboard."""

    USER = "user"
    SUPER_ADMIN = "super_admin"
    VIEWER = "viewer"


DASHBOARD_ROLES = frozenset({Role.SUPER_ADMIN, Role.VIEWER})


class Profile(Base, TimestampMixin):
    """Account profile, keyed by the identity provider's user id.

    cohort_id is the denormalized "current cohort" pointer read by the mobile
    client. It is only written through enrollment transitions.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[Role] = mapped_column(
        Enum(Role, values_callable=lambda x: [e.value for e in x], native_enum=False, length=20),
        default=Role.USER,
        nullable=False,
    )
    cohort_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("cohorts.id", ondelete="SET NULL"), nullable=True
    )
    push_token: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    cohort: Mapped["Cohort"] = relationship("Cohort", foreign_keys=[cohort_id])
    enrollments: Mapped[list["CohortParticipant"]] = relationship(
        "CohortParticipant", back_populates="profile", cascade="all, delete-orphan"
    )
    meal_selections: Mapped[list["MealSelection"]] = relationship(
        "MealSelection", back_populates="profile", cascade="all, delete-orphan"
    )
    daily_habits: Mapped[list["DailyHabit"]] = relationship(
        "DailyHabit", cascade="all, delete-orphan"
    )
    check_ins: Mapped[list["CheckIn"]] = relationship("CheckIn", cascade="all, delete-orphan")
    weekly_exercise: Mapped[list["WeeklyExercise"]] = relationship(
        "WeeklyExercise", cascade="all, delete-orphan"
    )
    streak: Mapped["Streak"] = relationship(
        "Streak", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def can_view_dashboard(self) -> bool:
        return self.role in DASHBOARD_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email='{self.email}', role={self.role.value})>"
