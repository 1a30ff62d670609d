"""Cohort screens and cohort mutations."""

from datetime import date

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..auth import require_dashboard_user
from ..database import get_db
from ..models import Profile
from ..queries import (
    cohort_meal_week,
    cohort_overview,
    cohort_selections,
    cohort_weeks,
    get_cohort,
    list_cohorts,
)
from . import not_found, run_action

router = APIRouter(prefix="/api/cohorts", tags=["cohorts"])

COHORT_NOT_FOUND = "Challenge not found"


@router.get("")
def cohorts_index(
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return {"cohorts": list_cohorts(db_session)}


@router.get("/{cohort_id}")
def cohort_detail(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    cohort = get_cohort(db_session, cohort_id)
    if cohort is None:
        return not_found(COHORT_NOT_FOUND)
    return cohort_overview(db_session, cohort, date.today())


@router.get("/{cohort_id}/weeks")
def weeks_index(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    cohort = get_cohort(db_session, cohort_id)
    if cohort is None:
        return not_found(COHORT_NOT_FOUND)
    return {"weeks": cohort_weeks(cohort)}


@router.get("/{cohort_id}/meals/{week}")
def meal_week(
    cohort_id: str,
    week: int,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    cohort = get_cohort(db_session, cohort_id)
    if cohort is None:
        return not_found(COHORT_NOT_FOUND)
    if week < 1 or week > cohort.duration_weeks:
        return not_found(f"Week {week} is outside this challenge")
    return cohort_meal_week(db_session, cohort, week)


@router.get("/{cohort_id}/selections")
def selections_index(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    cohort = get_cohort(db_session, cohort_id)
    if cohort is None:
        return not_found(COHORT_NOT_FOUND)
    return cohort_selections(db_session, cohort)


@router.post("")
def create_cohort(
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("create_cohort", payload, db_session, profile, success_status=201)


@router.put("/{cohort_id}")
def update_cohort(
    cohort_id: str,
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("update_cohort", {**payload, "id": cohort_id}, db_session, profile)


@router.post("/{cohort_id}/activate")
def activate_cohort(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("activate_cohort", {"id": cohort_id}, db_session, profile)


@router.post("/{cohort_id}/deactivate")
def deactivate_cohort(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("deactivate_cohort", {"id": cohort_id}, db_session, profile)


@router.delete("/{cohort_id}")
def delete_cohort(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("delete_cohort", {"id": cohort_id}, db_session, profile)
