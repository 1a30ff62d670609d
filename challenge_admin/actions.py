"""Admin mutations and their dispatcher.

Every handler takes (params, db_session, **kwargs) and returns a dict with
either success data or an error message:

    {"success": True, "data": {...}}
    {"error": "Name is required", "error_type": "validation"}

execute_action() applies the role gate before any handler runs, and turns
store and identity provider failures into error results.
"""

import json
import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import enrollment
from .auth import UNAUTHORIZED, can_mutate
from .config import get_settings
from .identity import IdentityError
from .models import (
    ActionType,
    Cohort,
    EventLog,
    MealOption,
    MealProgram,
    Profile,
    Role,
)
from .queries import (
    active_participant_count,
    cohort_to_dict,
    enrollment_to_dict,
    get_cohort,
    get_meal_program,
    get_profile_by_email,
    option_to_dict,
    profile_to_dict,
    program_cohort_count,
    program_to_dict,
)
from .schemas import (
    CohortInput,
    DuplicateProgramInput,
    MealOptionCreate,
    MealOptionInput,
    MealProgramInput,
    ParticipantCreate,
    ParticipantUpdate,
    first_error_message,
)

logger = logging.getLogger(__name__)

VALIDATION = "validation"
UNAUTHORIZED_ERROR = "unauthorized"
NOT_FOUND = "not_found"
INTEGRITY = "integrity"
STORE = "store"


def _error(message: str, error_type: str) -> dict:
    return {"error": message, "error_type": error_type}


def _store_message(exc: Exception) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def _log_event(
    db_session: Session,
    action_type: ActionType,
    actor: Profile | None,
    params: dict,
    result: dict,
    related_ids: dict | None = None,
) -> None:
    """Record a successful mutation in the audit trail."""
    db_session.add(EventLog(
        actor_id=actor.id if actor else None,
        action_type=action_type,
        input_summary=json.dumps(params, default=str, sort_keys=True)[:2000],
        output_summary=json.dumps(result, default=str, sort_keys=True)[:2000],
        related_ids=related_ids,
    ))
    db_session.flush()


# =============================================================================
# Cohorts
# =============================================================================


def execute_create_cohort(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Create an inactive cohort with a derived end date."""
    logger.info(f"[create_cohort] Called: name={params.get('name')}")
    try:
        data = CohortInput(**params)
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    if data.meal_program_id and get_meal_program(db_session, data.meal_program_id) is None:
        return _error("Meal program not found", NOT_FOUND)

    cohort = Cohort(
        name=data.name,
        start_date=data.start_date,
        duration_weeks=data.duration_weeks,
        is_active=False,
        meal_program_id=data.meal_program_id,
    )
    db_session.add(cohort)
    db_session.flush()

    result = {"success": True, "data": cohort_to_dict(cohort)}
    _log_event(db_session, ActionType.CREATE_COHORT, actor, params, result, {"cohort_id": cohort.id})
    logger.info(f"[create_cohort] SUCCESS: id={cohort.id}, end_date={cohort.end_date}")
    return result


def execute_update_cohort(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Edit a cohort; the end date is recomputed from start and duration."""
    logger.info(f"[update_cohort] Called: id={params.get('id')}")
    cohort = get_cohort(db_session, params.get("id") or "")
    if cohort is None:
        return _error("Challenge not found", NOT_FOUND)

    fields = {k: v for k, v in params.items() if k != "id"}
    try:
        data = CohortInput(**fields)
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    if data.meal_program_id and get_meal_program(db_session, data.meal_program_id) is None:
        return _error("Meal program not found", NOT_FOUND)

    cohort.name = data.name
    cohort.reschedule(data.start_date, data.duration_weeks)
    cohort.meal_program_id = data.meal_program_id
    db_session.flush()

    result = {"success": True, "data": cohort_to_dict(cohort)}
    _log_event(db_session, ActionType.UPDATE_COHORT, actor, params, result, {"cohort_id": cohort.id})
    logger.info(f"[update_cohort] SUCCESS: id={cohort.id}")
    return result


def execute_activate_cohort(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Make a cohort the single active one.

    Both updates run in the caller's transaction, so readers see either the
    old active cohort or the new one, never two and never none.
    """
    logger.info(f"[activate_cohort] Called: id={params.get('id')}")
    cohort = get_cohort(db_session, params.get("id") or "")
    if cohort is None:
        return _error("Challenge not found", NOT_FOUND)

    deactivated = (
        db_session.query(Cohort)
        .filter(Cohort.id != cohort.id, Cohort.is_active.is_(True))
        .update({Cohort.is_active: False}, synchronize_session="fetch")
    )
    cohort.is_active = True
    db_session.flush()

    result = {"success": True, "data": cohort_to_dict(cohort)}
    _log_event(db_session, ActionType.ACTIVATE_COHORT, actor, params, result, {"cohort_id": cohort.id})
    logger.info(f"[activate_cohort] SUCCESS: id={cohort.id}, deactivated={deactivated}")
    return result


def execute_deactivate_cohort(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    logger.info(f"[deactivate_cohort] Called: id={params.get('id')}")
    cohort = get_cohort(db_session, params.get("id") or "")
    if cohort is None:
        return _error("Challenge not found", NOT_FOUND)

    cohort.is_active = False
    db_session.flush()

    result = {"success": True, "data": cohort_to_dict(cohort)}
    _log_event(db_session, ActionType.DEACTIVATE_COHORT, actor, params, result, {"cohort_id": cohort.id})
    logger.info(f"[deactivate_cohort] SUCCESS: id={cohort.id}")
    return result


def execute_delete_cohort(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Delete a cohort that has no current participants."""
    logger.info(f"[delete_cohort] Called: id={params.get('id')}")
    cohort = get_cohort(db_session, params.get("id") or "")
    if cohort is None:
        return _error("Challenge not found", NOT_FOUND)

    count = active_participant_count(db_session, cohort.id)
    if count > 0:
        logger.info(f"[delete_cohort] REFUSED: {count} participants")
        return _error(
            f"Cannot delete a challenge with {count} assigned participant(s). Remove them first.",
            INTEGRITY,
        )

    cohort_id = cohort.id
    db_session.delete(cohort)
    db_session.flush()

    result = {"success": True, "deleted": cohort_id}
    _log_event(db_session, ActionType.DELETE_COHORT, actor, params, result, {"cohort_id": cohort_id})
    logger.info(f"[delete_cohort] SUCCESS: id={cohort_id}")
    return result


# =============================================================================
# Meal programs
# =============================================================================


def execute_create_meal_program(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    logger.info(f"[create_meal_program] Called: name={params.get('name')}")
    try:
        data = MealProgramInput(**params)
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    program = MealProgram(name=data.name, description=data.description)
    db_session.add(program)
    db_session.flush()

    result = {"success": True, "data": program_to_dict(program)}
    _log_event(db_session, ActionType.CREATE_MEAL_PROGRAM, actor, params, result, {"program_id": program.id})
    logger.info(f"[create_meal_program] SUCCESS: id={program.id}")
    return result


def execute_update_meal_program(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    logger.info(f"[update_meal_program] Called: id={params.get('id')}")
    program = get_meal_program(db_session, params.get("id") or "")
    if program is None:
        return _error("Program not found", NOT_FOUND)

    try:
        data = MealProgramInput(**{k: v for k, v in params.items() if k != "id"})
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    program.name = data.name
    program.description = data.description
    db_session.flush()

    result = {"success": True, "data": program_to_dict(program)}
    _log_event(db_session, ActionType.UPDATE_MEAL_PROGRAM, actor, params, result, {"program_id": program.id})
    logger.info(f"[update_meal_program] SUCCESS: id={program.id}")
    return result


def execute_delete_meal_program(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Delete a program no cohort references."""
    logger.info(f"[delete_meal_program] Called: id={params.get('id')}")
    program = get_meal_program(db_session, params.get("id") or "")
    if program is None:
        return _error("Program not found", NOT_FOUND)

    count = program_cohort_count(db_session, program.id)
    if count > 0:
        logger.info(f"[delete_meal_program] REFUSED: used by {count} cohorts")
        return _error(f"Cannot delete: {count} challenge(s) use this program", INTEGRITY)

    program_id = program.id
    db_session.delete(program)
    db_session.flush()

    result = {"success": True, "deleted": program_id}
    _log_event(db_session, ActionType.DELETE_MEAL_PROGRAM, actor, params, result, {"program_id": program_id})
    logger.info(f"[delete_meal_program] SUCCESS: id={program_id}")
    return result


def _copy_meal_options(db_session: Session, source: MealProgram, target: MealProgram) -> int:
    """Insert copies of every option of source under target."""
    options = db_session.query(MealOption).filter(MealOption.meal_program_id == source.id).all()
    db_session.add_all(
        [MealOption(meal_program_id=target.id, **option.copy_fields()) for option in options]
    )
    db_session.flush()
    return len(options)


def execute_duplicate_meal_program(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Deep-copy a program and all of its meal options.

    If copying the options fails, the new program record is deleted again so
    no empty duplicate is left behind.
    """
    logger.info(f"[duplicate_meal_program] Called: id={params.get('id')}, new_name={params.get('new_name')}")
    try:
        data = DuplicateProgramInput(new_name=params.get("new_name"))
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    original = get_meal_program(db_session, params.get("id") or "")
    if original is None:
        return _error("Program not found", NOT_FOUND)

    duplicate = MealProgram(name=data.new_name, description=original.description)
    db_session.add(duplicate)
    db_session.flush()

    try:
        with db_session.begin_nested():
            copied = _copy_meal_options(db_session, original, duplicate)
    except SQLAlchemyError as e:
        logger.error(f"[duplicate_meal_program] FAILED copying options: {type(e).__name__}: {e}")
        db_session.delete(duplicate)
        db_session.flush()
        return _error(_store_message(e), STORE)

    result = {"success": True, "data": program_to_dict(duplicate), "options_copied": copied}
    _log_event(
        db_session, ActionType.DUPLICATE_MEAL_PROGRAM, actor, params, result,
        {"program_id": duplicate.id, "source_program_id": original.id},
    )
    logger.info(f"[duplicate_meal_program] SUCCESS: id={duplicate.id}, {copied} options")
    return result


# =============================================================================
# Meal options
# =============================================================================


def execute_create_meal_option(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Add the lunch or dinner option for one program slot."""
    logger.info(
        f"[create_meal_option] Called: program={params.get('meal_program_id')}, "
        f"week={params.get('challenge_week')}, day={params.get('challenge_day')}, "
        f"type={params.get('meal_type')}"
    )
    try:
        data = MealOptionCreate(**params)
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    if get_meal_program(db_session, data.meal_program_id) is None:
        return _error("Program not found", NOT_FOUND)

    existing = (
        db_session.query(MealOption)
        .filter(
            MealOption.meal_program_id == data.meal_program_id,
            MealOption.challenge_week == data.challenge_week,
            MealOption.challenge_day == data.challenge_day,
            MealOption.meal_type == data.meal_type.value,
        )
        .first()
    )
    if existing is not None:
        return _error(
            f"A {data.meal_type.value} option already exists for week "
            f"{data.challenge_week}, day {data.challenge_day}",
            INTEGRITY,
        )

    option = MealOption(**{**data.model_dump(), "meal_type": data.meal_type.value})
    db_session.add(option)
    db_session.flush()

    result = {"success": True, "data": option_to_dict(option)}
    _log_event(
        db_session, ActionType.CREATE_MEAL_OPTION, actor, params, result,
        {"program_id": option.meal_program_id, "meal_option_id": option.id},
    )
    logger.info(f"[create_meal_option] SUCCESS: id={option.id}")
    return result


def execute_update_meal_option(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Edit the names, descriptions and images of an option's two alternatives."""
    logger.info(f"[update_meal_option] Called: id={params.get('id')}")
    option = db_session.get(MealOption, params.get("id") or "")
    if option is None:
        return _error("Meal option not found", NOT_FOUND)

    try:
        data = MealOptionInput(**{k: v for k, v in params.items() if k != "id"})
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    for field, value in data.model_dump().items():
        setattr(option, field, value)
    db_session.flush()

    result = {"success": True, "data": option_to_dict(option)}
    _log_event(
        db_session, ActionType.UPDATE_MEAL_OPTION, actor, params, result,
        {"program_id": option.meal_program_id, "meal_option_id": option.id},
    )
    logger.info(f"[update_meal_option] SUCCESS: id={option.id}")
    return result


# =============================================================================
# Participants
# =============================================================================


def execute_add_participant(params: dict, db_session: Session, actor: Profile | None = None, identity=None, **kwargs) -> dict:
    """Add a participant to a cohort by email.

    A known email moves the existing profile into the cohort. An unknown one
    gets an identity account with the default password and a new profile.
    """
    logger.info(f"[add_participant] Called: email={params.get('email')}, cohort={params.get('cohort_id')}")
    try:
        data = ParticipantCreate(**params)
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    cohort = get_cohort(db_session, data.cohort_id) if data.cohort_id else None
    if data.cohort_id and cohort is None:
        return _error("Challenge not found", NOT_FOUND)

    profile = get_profile_by_email(db_session, data.email)
    existing = profile is not None
    if profile is not None and profile.role != Role.USER:
        logger.info(f"[add_participant] REFUSED: {data.email} has role {profile.role.value}")
        return _error(f"{data.email} is a dashboard account", VALIDATION)
    if profile is None:
        if identity is None:
            raise IdentityError("Participant account management is not configured")
        user_id = identity.create_user(data.email, get_settings().default_participant_password)
        profile = Profile(id=user_id, email=data.email, full_name=data.full_name, role=Role.USER)
        db_session.add(profile)
        db_session.flush()

    record = enrollment.enroll(db_session, profile, cohort) if cohort else None

    result = {
        "success": True,
        "existing": existing,
        "data": profile_to_dict(profile),
        "enrollment": enrollment_to_dict(record) if record else None,
    }
    _log_event(
        db_session, ActionType.ADD_PARTICIPANT, actor, params, result,
        {"user_id": profile.id, "cohort_id": cohort.id if cohort else None},
    )
    logger.info(f"[add_participant] SUCCESS: user={profile.id}, existing={existing}")
    return result


def execute_update_participant(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Edit a participant's name and, when cohort_id is given, their cohort."""
    logger.info(f"[update_participant] Called: id={params.get('id')}")
    profile = db_session.get(Profile, params.get("id") or "")
    if profile is None:
        return _error("Participant not found", NOT_FOUND)

    try:
        data = ParticipantUpdate(**{k: v for k, v in params.items() if k != "id"})
    except ValidationError as e:
        return _error(first_error_message(e), VALIDATION)

    cohort = get_cohort(db_session, data.cohort_id) if data.cohort_id else None
    if data.cohort_id and cohort is None:
        return _error("Challenge not found", NOT_FOUND)

    if "full_name" in params:
        profile.full_name = data.full_name

    if "cohort_id" in params:
        if cohort is not None:
            enrollment.enroll(db_session, profile, cohort)
        else:
            enrollment.unassign(db_session, profile)
    db_session.flush()

    result = {"success": True, "data": profile_to_dict(profile)}
    _log_event(db_session, ActionType.UPDATE_PARTICIPANT, actor, params, result, {"user_id": profile.id})
    logger.info(f"[update_participant] SUCCESS: id={profile.id}")
    return result


def execute_remove_participant(params: dict, db_session: Session, actor: Profile | None = None, **kwargs) -> dict:
    """Take a participant out of a cohort (active -> left)."""
    logger.info(f"[remove_participant] Called: user={params.get('user_id')}, cohort={params.get('cohort_id')}")
    profile = db_session.get(Profile, params.get("user_id") or "")
    cohort = get_cohort(db_session, params.get("cohort_id") or "")
    if profile is None or cohort is None:
        return _error("Participant not found", NOT_FOUND)

    record = enrollment.remove(db_session, profile, cohort)
    if record is None:
        return _error("Participant is not active in this challenge", NOT_FOUND)

    result = {"success": True, "enrollment": enrollment_to_dict(record)}
    _log_event(
        db_session, ActionType.REMOVE_PARTICIPANT, actor, params, result,
        {"user_id": profile.id, "cohort_id": cohort.id},
    )
    logger.info(f"[remove_participant] SUCCESS: user={profile.id}, cohort={cohort.id}")
    return result


def execute_delete_participant(params: dict, db_session: Session, actor: Profile | None = None, identity=None, **kwargs) -> dict:
    """Delete a participant's identity account and profile."""
    logger.info(f"[delete_participant] Called: id={params.get('id')}")
    profile = db_session.get(Profile, params.get("id") or "")
    if profile is None:
        return _error("Participant not found", NOT_FOUND)

    if identity is None:
        raise IdentityError("Participant account management is not configured")
    identity.delete_user(profile.id)

    user_id = profile.id
    db_session.delete(profile)
    db_session.flush()

    result = {"success": True, "deleted": user_id}
    _log_event(db_session, ActionType.DELETE_PARTICIPANT, actor, params, result, {"user_id": user_id})
    logger.info(f"[delete_participant] SUCCESS: id={user_id}")
    return result


# =============================================================================
# Dispatcher
# =============================================================================

ACTION_HANDLERS = {
    # Cohorts
    "create_cohort": execute_create_cohort,
    "update_cohort": execute_update_cohort,
    "activate_cohort": execute_activate_cohort,
    "deactivate_cohort": execute_deactivate_cohort,
    "delete_cohort": execute_delete_cohort,
    # Meal programs
    "create_meal_program": execute_create_meal_program,
    "update_meal_program": execute_update_meal_program,
    "delete_meal_program": execute_delete_meal_program,
    "duplicate_meal_program": execute_duplicate_meal_program,
    # Meal options
    "create_meal_option": execute_create_meal_option,
    "update_meal_option": execute_update_meal_option,
    # Participants
    "add_participant": execute_add_participant,
    "update_participant": execute_update_participant,
    "remove_participant": execute_remove_participant,
    "delete_participant": execute_delete_participant,
}


def execute_action(
    action_name: str,
    params: dict,
    db_session: Session,
    actor: Profile | None = None,
    identity=None,
) -> dict:
    """Authorize and dispatch an admin mutation.

    Callers other than super_admin are rejected before the handler runs. On a
    store or identity provider failure the session is rolled back and an
    error dict is returned.
    """
    handler = ACTION_HANDLERS.get(action_name)
    if not handler:
        logger.error(f"[execute_action] Unknown action: {action_name}")
        return _error(f"Unknown action: {action_name}", VALIDATION)

    if not can_mutate(actor):
        logger.warning(f"[execute_action] Rejected {action_name} for actor={actor.id if actor else None}")
        return _error(UNAUTHORIZED, UNAUTHORIZED_ERROR)

    try:
        result = handler(params, db_session, actor=actor, identity=identity)
    except (SQLAlchemyError, IdentityError) as e:
        logger.error(f"[execute_action] {action_name} FAILED: {type(e).__name__}: {e}")
        db_session.rollback()
        message = _store_message(e) if isinstance(e, SQLAlchemyError) else str(e)
        return _error(message, STORE)

    return result
