"""Meal program and meal option endpoints."""

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..auth import require_dashboard_user
from ..database import get_db
from ..models import Profile
from ..queries import get_meal_program, list_meal_programs, meal_program_detail
from . import not_found, run_action

router = APIRouter(prefix="/api", tags=["meal programs"])


@router.get("/meal-programs")
def programs_index(
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return {"programs": list_meal_programs(db_session)}


@router.get("/meal-programs/{program_id}")
def program_detail(
    program_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    program = get_meal_program(db_session, program_id)
    if program is None:
        return not_found("Program not found")
    return meal_program_detail(db_session, program)


@router.post("/meal-programs")
def create_program(
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("create_meal_program", payload, db_session, profile, success_status=201)


@router.put("/meal-programs/{program_id}")
def update_program(
    program_id: str,
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("update_meal_program", {**payload, "id": program_id}, db_session, profile)


@router.delete("/meal-programs/{program_id}")
def delete_program(
    program_id: str,
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("delete_meal_program", {"id": program_id}, db_session, profile)


@router.post("/meal-programs/{program_id}/duplicate")
def duplicate_program(
    program_id: str,
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    params = {"id": program_id, "new_name": payload.get("new_name")}
    return run_action("duplicate_meal_program", params, db_session, profile, success_status=201)


@router.post("/meal-programs/{program_id}/options")
def create_option(
    program_id: str,
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    params = {**payload, "meal_program_id": program_id}
    return run_action("create_meal_option", params, db_session, profile, success_status=201)


@router.put("/meal-options/{option_id}")
def update_option(
    option_id: str,
    payload: dict = Body(...),
    db_session: Session = Depends(get_db),
    profile: Profile = Depends(require_dashboard_user),
):
    return run_action("update_meal_option", {**payload, "id": option_id}, db_session, profile)
