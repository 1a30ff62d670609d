"""Database models for the challenge dashboard."""

from .base import Base, TimestampMixin, new_id, utcnow
from .meal_program import MealProgram, MealOption, MealType, MealChoice
from .cohort import Cohort
from .profile import Profile, Role, DASHBOARD_ROLES
from .cohort_participant import CohortParticipant, EnrollmentStatus
from .meal_selection import MealSelection
from .telemetry import DailyHabit, CheckIn, Streak, WeeklyExercise
from .event_log import EventLog, ActionType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "new_id",
    "utcnow",
    # Programs
    "MealProgram",
    "MealOption",
    "MealType",
    "MealChoice",
    # Cohorts and membership
    "Cohort",
    "Profile",
    "Role",
    "DASHBOARD_ROLES",
    "CohortParticipant",
    "EnrollmentStatus",
    # Mobile app data
    "MealSelection",
    "DailyHabit",
    "CheckIn",
    "Streak",
    "WeeklyExercise",
    # Audit
    "EventLog",
    "ActionType",
]
