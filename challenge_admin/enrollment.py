"""Participant enrollment state machine.

Each (participant, cohort) pair has one CohortParticipant record:

    active --(enrolled into another cohort)--> completed
    active --(removed from the cohort)-------> left
    completed / left --(re-enrolled into the same cohort)--> active

A participant has at most one active record across all cohorts. The
profile's cohort_id pointer mirrors the active record for the mobile client;
reads in this package go through current_enrollment() instead.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import Cohort, CohortParticipant, EnrollmentStatus, Profile, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    EnrollmentStatus.ACTIVE: {EnrollmentStatus.COMPLETED, EnrollmentStatus.LEFT},
    EnrollmentStatus.COMPLETED: {EnrollmentStatus.ACTIVE},
    EnrollmentStatus.LEFT: {EnrollmentStatus.ACTIVE},
}


class InvalidTransition(ValueError):
    """Raised when an enrollment status change is not allowed."""


def transition(record: CohortParticipant, new_status: EnrollmentStatus, now: datetime) -> None:
    """Move a record to new_status, maintaining left_at."""
    if new_status not in ALLOWED_TRANSITIONS[record.status]:
        raise InvalidTransition(
            f"Cannot move enrollment from {record.status.value} to {new_status.value}"
        )
    record.status = new_status
    record.left_at = None if new_status == EnrollmentStatus.ACTIVE else now


def find_enrollment(db_session: Session, user_id: str, cohort_id: str) -> CohortParticipant | None:
    return (
        db_session.query(CohortParticipant)
        .filter(
            CohortParticipant.user_id == user_id,
            CohortParticipant.cohort_id == cohort_id,
        )
        .first()
    )


def active_enrollments(db_session: Session, user_id: str) -> list[CohortParticipant]:
    return (
        db_session.query(CohortParticipant)
        .filter(
            CohortParticipant.user_id == user_id,
            CohortParticipant.status == EnrollmentStatus.ACTIVE,
        )
        .order_by(CohortParticipant.joined_at.desc())
        .all()
    )


def current_enrollment(db_session: Session, user_id: str) -> CohortParticipant | None:
    """The participant's active enrollment, if any."""
    records = active_enrollments(db_session, user_id)
    return records[0] if records else None


def current_cohort_id(db_session: Session, user_id: str) -> str | None:
    record = current_enrollment(db_session, user_id)
    return record.cohort_id if record else None


def _insert_active(db_session: Session, profile: Profile, cohort: Cohort, now: datetime) -> CohortParticipant:
    """Insert a new active record, reactivating instead if one already exists.

    A uniqueness conflict here means another request created the pair first;
    it is recovered from, not reported.
    """
    try:
        with db_session.begin_nested():
            record = CohortParticipant(
                user_id=profile.id,
                cohort_id=cohort.id,
                joined_at=now,
                status=EnrollmentStatus.ACTIVE,
            )
            db_session.add(record)
        return record
    except IntegrityError:
        logger.warning(
            f"Enrollment for user={profile.id} cohort={cohort.id} already exists, reactivating"
        )
        record = find_enrollment(db_session, profile.id, cohort.id)
        if record is None:
            raise
        if not record.is_active:
            transition(record, EnrollmentStatus.ACTIVE, now)
        return record


def enroll(db_session: Session, profile: Profile, cohort: Cohort, now: datetime | None = None) -> CohortParticipant:
    """Make cohort the participant's current cohort.

    Active records in other cohorts are completed first, then the pair's
    record is created or reactivated. Enrolling into the current cohort again
    changes nothing.
    """
    now = now or utcnow()

    for record in active_enrollments(db_session, profile.id):
        if record.cohort_id != cohort.id:
            transition(record, EnrollmentStatus.COMPLETED, now)
            logger.info(f"Enrollment user={profile.id} cohort={record.cohort_id} completed")
    db_session.flush()

    record = find_enrollment(db_session, profile.id, cohort.id)
    if record is None:
        record = _insert_active(db_session, profile, cohort, now)
    elif not record.is_active:
        transition(record, EnrollmentStatus.ACTIVE, now)

    profile.cohort_id = cohort.id
    db_session.flush()
    logger.info(f"Enrollment user={profile.id} cohort={cohort.id} active")
    return record


def remove(db_session: Session, profile: Profile, cohort: Cohort, now: datetime | None = None) -> CohortParticipant | None:
    """Administrative removal from a cohort (active -> left).

    Returns the updated record, or None when the participant was not
    actively enrolled in the cohort.
    """
    now = now or utcnow()

    record = find_enrollment(db_session, profile.id, cohort.id)
    if record is None or not record.is_active:
        return None

    transition(record, EnrollmentStatus.LEFT, now)
    if profile.cohort_id == cohort.id:
        profile.cohort_id = None
    db_session.flush()
    logger.info(f"Enrollment user={profile.id} cohort={cohort.id} left")
    return record


def unassign(db_session: Session, profile: Profile, now: datetime | None = None) -> CohortParticipant | None:
    """Remove the participant from whatever cohort they are active in."""
    record = current_enrollment(db_session, profile.id)
    if record is None:
        profile.cohort_id = None
        db_session.flush()
        return None
    return remove(db_session, profile, record.cohort, now)
