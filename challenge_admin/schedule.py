"""Challenge calendar arithmetic.

A challenge runs for whole weeks starting on its start date:

    end_date   = start_date + duration_weeks * 7 - 1 days
    week_start = start_date + (week - 1) * 7 days
    week_end   = week_start + 6 days

All functions are pure. Duration bounds (1-12 weeks) are enforced by the
input schemas, not here.
"""

from dataclasses import dataclass
from datetime import date, timedelta

DEFAULT_DURATION_WEEKS = 4
MIN_DURATION_WEEKS = 1
MAX_DURATION_WEEKS = 12
DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class ChallengeWeek:
    """One week of a challenge with its calendar boundaries."""

    number: int
    start: date
    end: date

    @property
    def label(self) -> str:
        return f"Week {self.number}"

    def day_date(self, day: int) -> date:
        """Calendar date of challenge day 1-7 within this week."""
        return self.start + timedelta(days=day - 1)

    def to_dict(self) -> dict:
        return {
            "week": self.number,
            "label": self.label,
            "week_start": self.start.isoformat(),
            "week_end": self.end.isoformat(),
        }


def end_date_for(start_date: date, duration_weeks: int) -> date:
    """Last day of a challenge (inclusive)."""
    return start_date + timedelta(days=duration_weeks * DAYS_PER_WEEK - 1)


def week_start(start_date: date, week: int) -> date:
    return start_date + timedelta(days=(week - 1) * DAYS_PER_WEEK)


def week_end(start_date: date, week: int) -> date:
    return week_start(start_date, week) + timedelta(days=DAYS_PER_WEEK - 1)


def challenge_week(start_date: date, week: int) -> ChallengeWeek:
    return ChallengeWeek(
        number=week,
        start=week_start(start_date, week),
        end=week_end(start_date, week),
    )


def challenge_weeks(start_date: date, duration_weeks: int) -> list[ChallengeWeek]:
    """All weeks of a challenge, in order."""
    return [challenge_week(start_date, w) for w in range(1, duration_weeks + 1)]


def current_week(start_date: date, duration_weeks: int, today: date) -> int | None:
    """Participant-facing week number for today.

    Returns None when the challenge has not started yet or has already ended.
    """
    days_elapsed = (today - start_date).days
    if days_elapsed < 0 or days_elapsed >= duration_weeks * DAYS_PER_WEEK:
        return None
    return days_elapsed // DAYS_PER_WEEK + 1


def challenge_phase(start_date: date, duration_weeks: int, today: date) -> str:
    """Where today falls relative to the challenge: not_started, in_progress or ended."""
    if today < start_date:
        return "not_started"
    if current_week(start_date, duration_weeks, today) is None:
        return "ended"
    return "in_progress"
