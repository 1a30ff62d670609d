"""Read views for the dashboard screens.

Membership is read from active enrollment records, never from the profile's
cohort_id pointer. Missing optional data degrades to zeros, "Never" or empty
values instead of errors.
"""

import logging
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from .meal_names import DAYS, MealCatalog
from .models import (
    CheckIn,
    Cohort,
    CohortParticipant,
    DailyHabit,
    EnrollmentStatus,
    MealOption,
    MealProgram,
    MealSelection,
    MealType,
    Profile,
    Streak,
    WeeklyExercise,
)
from .schedule import challenge_phase, challenge_week, challenge_weeks, current_week

logger = logging.getLogger(__name__)

NEVER = "Never"
RECENT_CHECK_INS = 10
RECENT_HABITS = 14


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


# =============================================================================
# Serializers
# =============================================================================


def cohort_to_dict(cohort: Cohort, participant_count: int | None = None) -> dict:
    data = {
        "id": cohort.id,
        "name": cohort.name,
        "start_date": _iso(cohort.start_date),
        "end_date": _iso(cohort.end_date),
        "duration_weeks": cohort.duration_weeks,
        "is_active": cohort.is_active,
        "meal_program_id": cohort.meal_program_id,
        "created_at": _iso(cohort.created_at),
        "updated_at": _iso(cohort.updated_at),
    }
    if participant_count is not None:
        data["participant_count"] = participant_count
    return data


def program_to_dict(program: MealProgram, cohort_count: int | None = None) -> dict:
    data = {
        "id": program.id,
        "name": program.name,
        "description": program.description,
        "created_at": _iso(program.created_at),
        "updated_at": _iso(program.updated_at),
    }
    if cohort_count is not None:
        data["cohort_count"] = cohort_count
    return data


def option_to_dict(option: MealOption | None) -> dict | None:
    if option is None:
        return None
    return {
        "id": option.id,
        "meal_program_id": option.meal_program_id,
        "challenge_week": option.challenge_week,
        "challenge_day": option.challenge_day,
        "day_of_week": option.day_of_week,
        "week_start_date": _iso(option.week_start_date),
        "meal_type": option.meal_type,
        "option_a_name": option.option_a_name,
        "option_a_description": option.option_a_description,
        "option_a_image_url": option.option_a_image_url,
        "option_b_name": option.option_b_name,
        "option_b_description": option.option_b_description,
        "option_b_image_url": option.option_b_image_url,
    }


def profile_to_dict(profile: Profile) -> dict:
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "role": profile.role.value,
        "cohort_id": profile.cohort_id,
        "created_at": _iso(profile.created_at),
    }


def enrollment_to_dict(record: CohortParticipant) -> dict:
    cohort = record.cohort
    return {
        "id": record.id,
        "cohort_id": record.cohort_id,
        "cohort_name": cohort.name if cohort else None,
        "cohort_start_date": _iso(cohort.start_date) if cohort else None,
        "cohort_end_date": _iso(cohort.end_date) if cohort else None,
        "status": record.status.value,
        "joined_at": _iso(record.joined_at),
        "left_at": _iso(record.left_at),
    }


def selection_to_dict(selection: MealSelection, catalog: MealCatalog) -> dict:
    profile = selection.profile
    return {
        "id": selection.id,
        "user_id": selection.user_id,
        "email": profile.email if profile else None,
        "full_name": profile.full_name if profile else None,
        "challenge_week": selection.challenge_week,
        "week_start_date": _iso(selection.week_start_date),
        "delivery_preference": selection.delivery_preference,
        "locked": bool(selection.locked),
        "locked_at": _iso(selection.locked_at),
        "created_at": _iso(selection.created_at),
        "meals": catalog.resolve_entries(selection.challenge_week, selection.selections),
    }


# =============================================================================
# Lookups
# =============================================================================


def get_cohort(db_session: Session, cohort_id: str) -> Cohort | None:
    return db_session.get(Cohort, cohort_id)


def get_meal_program(db_session: Session, program_id: str) -> MealProgram | None:
    return db_session.get(MealProgram, program_id)


def get_profile_by_email(db_session: Session, email: str) -> Profile | None:
    return (
        db_session.query(Profile)
        .filter(func.lower(Profile.email) == email.strip().lower())
        .first()
    )


def _active_member_ids(cohort_id: str):
    return select(CohortParticipant.user_id).where(
        CohortParticipant.cohort_id == cohort_id,
        CohortParticipant.status == EnrollmentStatus.ACTIVE,
    )


def active_participant_count(db_session: Session, cohort_id: str) -> int:
    return (
        db_session.query(func.count(CohortParticipant.id))
        .filter(
            CohortParticipant.cohort_id == cohort_id,
            CohortParticipant.status == EnrollmentStatus.ACTIVE,
        )
        .scalar()
        or 0
    )


def program_cohort_count(db_session: Session, program_id: str) -> int:
    return (
        db_session.query(func.count(Cohort.id))
        .filter(Cohort.meal_program_id == program_id)
        .scalar()
        or 0
    )


def catalog_for_program(db_session: Session, program_id: str | None) -> MealCatalog:
    """Meal options of a program; empty when no program is assigned."""
    if not program_id:
        return MealCatalog()
    options = db_session.query(MealOption).filter(MealOption.meal_program_id == program_id).all()
    return MealCatalog(options)


# =============================================================================
# Cohorts
# =============================================================================


def list_cohorts(db_session: Session) -> list[dict]:
    """All cohorts for the switcher, newest start first."""
    counts = dict(
        db_session.query(CohortParticipant.cohort_id, func.count(CohortParticipant.id))
        .filter(CohortParticipant.status == EnrollmentStatus.ACTIVE)
        .group_by(CohortParticipant.cohort_id)
        .all()
    )
    cohorts = db_session.query(Cohort).order_by(Cohort.start_date.desc(), Cohort.name).all()
    return [cohort_to_dict(c, counts.get(c.id, 0)) for c in cohorts]


def cohort_overview(db_session: Session, cohort: Cohort, today: date) -> dict:
    """Headline numbers for a cohort's overview screen."""
    members = _active_member_ids(cohort.id)

    selections_count = (
        db_session.query(func.count(MealSelection.id))
        .filter(MealSelection.user_id.in_(members))
        .scalar()
        or 0
    )

    adherence = (
        db_session.query(DailyHabit.meal_adherence)
        .filter(DailyHabit.user_id.in_(members))
        .all()
    )
    total_habits = len(adherence)
    adherent = sum(1 for (flag,) in adherence if flag)
    adherence_rate = round(adherent / total_habits * 100) if total_habits else 0

    week = current_week(cohort.start_date, cohort.duration_weeks, today)
    participant_count = active_participant_count(db_session, cohort.id)

    return {
        "cohort": cohort_to_dict(cohort, participant_count),
        "participant_count": participant_count,
        "selections_count": selections_count,
        "current_week": week or 0,
        "phase": challenge_phase(cohort.start_date, cohort.duration_weeks, today),
        "duration_weeks": cohort.duration_weeks,
        "adherence_rate": adherence_rate,
    }


def cohort_weeks(cohort: Cohort) -> list[dict]:
    return [w.to_dict() for w in challenge_weeks(cohort.start_date, cohort.duration_weeks)]


def cohort_meal_week(db_session: Session, cohort: Cohort, week: int) -> dict:
    """Lunch and dinner options for each day of one challenge week."""
    calendar_week = challenge_week(cohort.start_date, week)
    program = cohort.meal_program
    catalog = catalog_for_program(db_session, cohort.meal_program_id)
    grid = catalog.week_grid(week)

    return {
        "program": program_to_dict(program) if program else None,
        "week": calendar_week.to_dict(),
        "days": [
            {
                "day": day,
                "date": calendar_week.day_date(day).isoformat(),
                **{meal_type.value: option_to_dict(grid[day][meal_type.value]) for meal_type in MealType},
            }
            for day in DAYS
        ],
    }


# =============================================================================
# Participants
# =============================================================================


def list_participants(db_session: Session, cohort_id: str) -> list[dict]:
    """Active participants of a cohort with their streak summary."""
    rows = (
        db_session.query(Profile, CohortParticipant)
        .join(CohortParticipant, CohortParticipant.user_id == Profile.id)
        .options(joinedload(Profile.streak))
        .filter(
            CohortParticipant.cohort_id == cohort_id,
            CohortParticipant.status == EnrollmentStatus.ACTIVE,
        )
        .order_by(Profile.created_at.desc(), Profile.email)
        .all()
    )

    result = []
    for profile, record in rows:
        streak = profile.streak
        last_check_in = streak.last_check_in_date if streak else None
        result.append({
            **profile_to_dict(profile),
            "joined_at": _iso(record.joined_at),
            "current_streak": (streak.current_streak or 0) if streak else 0,
            "last_check_in_date": _iso(last_check_in),
            "last_check_in": _iso(last_check_in) or NEVER,
        })
    return result


def participant_detail(db_session: Session, cohort_id: str, user_id: str) -> dict | None:
    """Everything the participant screen shows, or None if not in the cohort."""
    profile = db_session.get(Profile, user_id)
    if profile is None:
        return None
    membership = (
        db_session.query(CohortParticipant)
        .filter(CohortParticipant.user_id == user_id, CohortParticipant.cohort_id == cohort_id)
        .first()
    )
    if membership is None:
        return None

    check_ins = (
        db_session.query(CheckIn)
        .filter(CheckIn.user_id == user_id)
        .order_by(CheckIn.date.desc())
        .limit(RECENT_CHECK_INS)
        .all()
    )
    habits = (
        db_session.query(DailyHabit)
        .filter(DailyHabit.user_id == user_id)
        .order_by(DailyHabit.date.desc())
        .limit(RECENT_HABITS)
        .all()
    )
    streak = db_session.query(Streak).filter(Streak.user_id == user_id).first()
    selections = (
        db_session.query(MealSelection)
        .filter(MealSelection.user_id == user_id)
        .order_by(MealSelection.challenge_week.asc(), MealSelection.created_at.desc())
        .all()
    )
    history = (
        db_session.query(CohortParticipant)
        .options(joinedload(CohortParticipant.cohort))
        .filter(CohortParticipant.user_id == user_id)
        .order_by(CohortParticipant.joined_at.desc())
        .all()
    )
    exercise = (
        db_session.query(WeeklyExercise)
        .filter(WeeklyExercise.user_id == user_id)
        .order_by(WeeklyExercise.week_start_date.asc())
        .all()
    )

    cohort = db_session.get(Cohort, cohort_id)
    catalog = catalog_for_program(db_session, cohort.meal_program_id if cohort else None)

    return {
        "profile": profile_to_dict(profile),
        "membership_status": membership.status.value,
        "check_ins": [
            {
                "id": c.id,
                "date": _iso(c.date),
                "challenges_faced": c.challenges_faced,
                "habits_summary": c.habits_summary,
            }
            for c in check_ins
        ],
        "habits": [
            {
                "date": _iso(h.date),
                "steps": h.steps,
                "water_ml": h.water_ml,
                "weight_kg": h.weight_kg,
                "meal_adherence": h.meal_adherence,
            }
            for h in habits
        ],
        "streak": {
            "current_streak": (streak.current_streak or 0) if streak else 0,
            "longest_streak": (streak.longest_streak or 0) if streak else 0,
            "last_check_in_date": _iso(streak.last_check_in_date) if streak else None,
        },
        "selections": [selection_to_dict(s, catalog) for s in selections],
        "participation_history": [enrollment_to_dict(r) for r in history],
        "weekly_exercise": [
            {"week_start_date": _iso(w.week_start_date), "completed_3x": bool(w.completed_3x)}
            for w in exercise
        ],
    }


# =============================================================================
# Meal selections
# =============================================================================


def selections_query(db_session: Session, cohort_id: str | None = None, week: int | None = None):
    """Selections with their participant loaded, in display order."""
    query = db_session.query(MealSelection).options(joinedload(MealSelection.profile))
    if cohort_id:
        query = query.filter(MealSelection.user_id.in_(_active_member_ids(cohort_id)))
    if week is not None:
        query = query.filter(MealSelection.challenge_week == week)
    return query.order_by(
        MealSelection.challenge_week.asc(),
        MealSelection.created_at.desc(),
        MealSelection.id.asc(),
    )


def cohort_selections(db_session: Session, cohort: Cohort) -> dict:
    """A cohort's selections grouped by challenge week."""
    selections = selections_query(db_session, cohort.id).all()
    catalog = catalog_for_program(db_session, cohort.meal_program_id)

    by_week: dict[int, list[dict]] = {}
    for selection in selections:
        if selection.challenge_week is None:
            continue
        by_week.setdefault(selection.challenge_week, []).append(selection_to_dict(selection, catalog))

    return {
        "total": len(selections),
        "weeks": [
            {**w.to_dict(), "selections": by_week.get(w.number, [])}
            for w in challenge_weeks(cohort.start_date, cohort.duration_weeks)
        ],
    }


def export_catalogs(db_session: Session, cohort: Cohort | None, selections: list[MealSelection]):
    """Catalog lookup for the CSV export.

    With a cohort every row resolves against its program; without one, each
    row resolves against the program of the participant's current cohort.
    Programs and options are loaded up front, not per row.
    """
    if cohort is not None:
        catalog = catalog_for_program(db_session, cohort.meal_program_id)
        return lambda selection: catalog

    user_ids = {s.user_id for s in selections}
    program_by_user = dict(
        db_session.query(CohortParticipant.user_id, Cohort.meal_program_id)
        .join(Cohort, Cohort.id == CohortParticipant.cohort_id)
        .filter(
            CohortParticipant.user_id.in_(user_ids),
            CohortParticipant.status == EnrollmentStatus.ACTIVE,
        )
        .all()
    ) if user_ids else {}

    program_ids = {p for p in program_by_user.values() if p}
    options_by_program: dict[str, list[MealOption]] = {}
    if program_ids:
        for option in db_session.query(MealOption).filter(MealOption.meal_program_id.in_(program_ids)):
            options_by_program.setdefault(option.meal_program_id, []).append(option)

    catalogs = {p: MealCatalog(options_by_program.get(p, [])) for p in program_ids}
    empty = MealCatalog()

    def catalog_for(selection: MealSelection) -> MealCatalog:
        return catalogs.get(program_by_user.get(selection.user_id), empty)

    return catalog_for


# =============================================================================
# Meal programs
# =============================================================================


def list_meal_programs(db_session: Session) -> list[dict]:
    """All programs, newest first, with how many cohorts use each."""
    counts = dict(
        db_session.query(Cohort.meal_program_id, func.count(Cohort.id))
        .filter(Cohort.meal_program_id.isnot(None))
        .group_by(Cohort.meal_program_id)
        .all()
    )
    programs = db_session.query(MealProgram).order_by(MealProgram.created_at.desc()).all()
    return [program_to_dict(p, counts.get(p.id, 0)) for p in programs]


def meal_program_detail(db_session: Session, program: MealProgram) -> dict:
    options = (
        db_session.query(MealOption)
        .filter(MealOption.meal_program_id == program.id)
        .order_by(MealOption.challenge_week, MealOption.challenge_day, MealOption.meal_type)
        .all()
    )
    cohorts = (
        db_session.query(Cohort)
        .filter(Cohort.meal_program_id == program.id)
        .order_by(Cohort.start_date.desc())
        .all()
    )
    return {
        "program": program_to_dict(program, len(cohorts)),
        "options": [option_to_dict(o) for o in options],
        "cohorts": [{"id": c.id, "name": c.name} for c in cohorts],
    }
