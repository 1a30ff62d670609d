"""Participant roster endpoints."""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..auth import require_dashboard_user
from ..database import get_db
from ..identity import SupabaseIdentityProvider, get_identity_provider
from ..models import Profile
from ..queries import get_cohort, list_participants, participant_detail
from . import not_found, run_action

router = APIRouter(prefix="/api", tags=["participants"])


@router.get("/cohorts/{cohort_id}/participants")
def participants_index(
    cohort_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    if get_cohort(db_session, cohort_id) is None:
        return not_found("Challenge not found")
    return {"participants": list_participants(db_session, cohort_id)}


@router.get("/cohorts/{cohort_id}/participants/{user_id}")
def participant_screen(
    cohort_id: str,
    user_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    detail = participant_detail(db_session, cohort_id, user_id)
    if detail is None:
        return not_found("Participant not found")
    return detail


@router.delete("/cohorts/{cohort_id}/participants/{user_id}")
def remove_participant(
    cohort_id: str,
    user_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    params = {"cohort_id": cohort_id, "user_id": user_id}
    return run_action("remove_participant", params, db_session, profile)


@router.post("/participants")
def add_participant(
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
    identity: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    return run_action(
        "add_participant", payload, db_session, profile, identity=identity, success_status=201
    )


@router.patch("/participants/{user_id}")
def update_participant(
    user_id: str,
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("update_participant", {**payload, "id": user_id}, db_session, profile)


@router.delete("/participants/{user_id}")
def delete_participant(
    user_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
    identity: SupabaseIdentityProvider = Depends(get_identity_provider),
):
    return run_action("delete_participant", {"id": user_id}, db_session, profile, identity=identity)
