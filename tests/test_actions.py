from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from challenge_admin import actions, enrollment
from challenge_admin.actions import execute_action
from challenge_admin.models import (
    ActionType,
    Cohort,
    CohortParticipant,
    EnrollmentStatus,
    EventLog,
    MealOption,
    MealProgram,
    Profile,
)


# =============================================================================
# Role gate
# =============================================================================


@pytest.mark.parametrize("actor_fixture", ["viewer", "member", None])
def test_mutations_require_super_admin(request, db_session, actor_fixture):
    actor = request.getfixturevalue(actor_fixture) if actor_fixture else None

    result = execute_action(
        "create_cohort", {"name": "Spring", "start_date": "2025-01-06"}, db_session, actor=actor
    )

    assert result == {"error": "Unauthorized", "error_type": "unauthorized"}
    assert db_session.query(Cohort).count() == 0
    assert db_session.query(EventLog).count() == 0


def test_unknown_action(db_session, admin):
    result = execute_action("drop_everything", {}, db_session, actor=admin)
    assert result["error_type"] == "validation"


def test_store_failure_rolls_back_and_reports(db_session, admin, monkeypatch):
    def failing_create(params, db_session, **kwargs):
        db_session.add(Cohort(name="Half written", start_date=date(2025, 1, 6), duration_weeks=4))
        db_session.flush()
        raise OperationalError("INSERT INTO event_logs", {}, Exception("connection lost"))

    monkeypatch.setitem(actions.ACTION_HANDLERS, "create_cohort", failing_create)

    result = execute_action("create_cohort", {}, db_session, actor=admin)

    assert result == {"error": "connection lost", "error_type": "store"}
    assert db_session.query(Cohort).filter_by(name="Half written").count() == 0


# =============================================================================
# Cohorts
# =============================================================================


def test_create_cohort_derives_end_date(db_session, admin):
    result = execute_action(
        "create_cohort",
        {"name": "  Spring  ", "start_date": "2025-01-06", "duration_weeks": 6},
        db_session,
        actor=admin,
    )

    assert result["success"] is True
    data = result["data"]
    assert data["name"] == "Spring"
    assert data["end_date"] == "2025-02-16"
    assert data["is_active"] is False

    event = db_session.query(EventLog).one()
    assert event.action_type == ActionType.CREATE_COHORT
    assert event.actor_id == admin.id
    assert event.related_ids == {"cohort_id": data["id"]}


def test_create_cohort_defaults_to_four_weeks(db_session, admin):
    result = execute_action(
        "create_cohort",
        {"name": "Spring", "start_date": date(2025, 1, 6), "duration_weeks": ""},
        db_session,
        actor=admin,
    )

    assert result["data"]["duration_weeks"] == 4
    assert result["data"]["end_date"] == "2025-02-02"


@pytest.mark.parametrize(
    "params, message",
    [
        ({"name": "", "start_date": "2025-01-06"}, "Name is required"),
        ({"name": "Spring"}, "Start date is required"),
    ],
)
def test_create_cohort_validation(db_session, admin, params, message):
    result = execute_action("create_cohort", params, db_session, actor=admin)

    assert result == {"error": message, "error_type": "validation"}


@pytest.mark.parametrize("weeks", [0, 13])
def test_create_cohort_rejects_duration_out_of_range(db_session, admin, weeks):
    result = execute_action(
        "create_cohort",
        {"name": "Spring", "start_date": "2025-01-06", "duration_weeks": weeks},
        db_session,
        actor=admin,
    )

    assert result["error_type"] == "validation"
    assert "duration_weeks" in result["error"]


def test_update_cohort_recomputes_end_date(db_session, admin, make_cohort, program):
    cohort = make_cohort()

    result = execute_action(
        "update_cohort",
        {
            "id": cohort.id,
            "name": "Renamed",
            "start_date": "2025-03-03",
            "duration_weeks": 2,
            "meal_program_id": program.id,
        },
        db_session,
        actor=admin,
    )

    assert result["success"] is True
    assert cohort.name == "Renamed"
    assert cohort.end_date == date(2025, 3, 16)
    assert cohort.meal_program_id == program.id


def test_update_missing_cohort(db_session, admin):
    result = execute_action(
        "update_cohort", {"id": "nope", "name": "X", "start_date": "2025-01-06"}, db_session, actor=admin
    )
    assert result == {"error": "Challenge not found", "error_type": "not_found"}


def test_activate_swaps_active_cohort(db_session, admin, make_cohort):
    old = make_cohort("Old", is_active=True)
    new = make_cohort("New")

    result = execute_action("activate_cohort", {"id": new.id}, db_session, actor=admin)

    assert result["success"] is True
    db_session.expire_all()
    active = db_session.query(Cohort).filter(Cohort.is_active.is_(True)).all()
    assert [c.id for c in active] == [new.id]
    assert db_session.get(Cohort, old.id).is_active is False


def test_activate_missing_cohort_leaves_current_active(db_session, admin, make_cohort):
    current = make_cohort("Current", is_active=True)

    result = execute_action("activate_cohort", {"id": "missing"}, db_session, actor=admin)

    assert result["error_type"] == "not_found"
    assert db_session.get(Cohort, current.id).is_active is True


def test_store_allows_only_one_active_cohort(db_session, make_cohort):
    make_cohort("One", is_active=True)

    with pytest.raises(IntegrityError):
        make_cohort("Two", is_active=True)


def test_deactivate_cohort(db_session, admin, make_cohort):
    cohort = make_cohort(is_active=True)

    result = execute_action("deactivate_cohort", {"id": cohort.id}, db_session, actor=admin)

    assert result["data"]["is_active"] is False


def test_delete_cohort_blocked_by_participants(db_session, admin, member, make_cohort, make_profile):
    cohort = make_cohort()
    enrollment.enroll(db_session, member, cohort)
    enrollment.enroll(db_session, make_profile("other@example.com"), cohort)

    result = execute_action("delete_cohort", {"id": cohort.id}, db_session, actor=admin)

    assert result == {
        "error": "Cannot delete a challenge with 2 assigned participant(s). Remove them first.",
        "error_type": "integrity",
    }
    assert db_session.get(Cohort, cohort.id) is not None


def test_delete_cohort_with_only_former_participants(db_session, admin, member, make_cohort):
    cohort = make_cohort()
    enrollment.enroll(db_session, member, cohort)
    enrollment.remove(db_session, member, cohort)
    cohort_id = cohort.id

    result = execute_action("delete_cohort", {"id": cohort_id}, db_session, actor=admin)

    assert result == {"success": True, "deleted": cohort_id}
    assert db_session.get(Cohort, cohort_id) is None
    assert db_session.query(CohortParticipant).count() == 0


# =============================================================================
# Meal programs and options
# =============================================================================


def test_delete_program_blocked_by_cohorts(db_session, admin, make_cohort, program):
    make_cohort("A", meal_program_id=program.id)
    make_cohort("B", meal_program_id=program.id)

    result = execute_action("delete_meal_program", {"id": program.id}, db_session, actor=admin)

    assert result == {"error": "Cannot delete: 2 challenge(s) use this program", "error_type": "integrity"}


def test_delete_unused_program_removes_options(db_session, admin, program):
    program_id = program.id

    result = execute_action("delete_meal_program", {"id": program_id}, db_session, actor=admin)

    assert result["success"] is True
    assert db_session.query(MealOption).filter_by(meal_program_id=program_id).count() == 0


def test_duplicate_program_copies_every_option(db_session, admin, program):
    result = execute_action(
        "duplicate_meal_program", {"id": program.id, "new_name": "Clean Eating v2"}, db_session, actor=admin
    )

    assert result["success"] is True
    assert result["options_copied"] == 4
    copy_id = result["data"]["id"]
    assert copy_id != program.id

    originals = db_session.query(MealOption).filter_by(meal_program_id=program.id).all()
    copies = db_session.query(MealOption).filter_by(meal_program_id=copy_id).all()
    assert len(copies) == len(originals)

    def signature(option):
        return tuple(option.copy_fields().items())

    assert {signature(o) for o in copies} == {signature(o) for o in originals}
    assert not {o.id for o in copies} & {o.id for o in originals}


def test_duplicate_program_requires_name(db_session, admin, program):
    result = execute_action(
        "duplicate_meal_program", {"id": program.id, "new_name": " "}, db_session, actor=admin
    )
    assert result == {"error": "Name is required", "error_type": "validation"}


def test_duplicate_program_removes_copy_when_options_fail(db_session, admin, program, monkeypatch):
    def failing_copy(db_session, source, target):
        db_session.add(MealOption(meal_program_id=target.id, meal_type="lunch"))
        db_session.flush()

    monkeypatch.setattr(actions, "_copy_meal_options", failing_copy)

    result = execute_action(
        "duplicate_meal_program", {"id": program.id, "new_name": "Broken copy"}, db_session, actor=admin
    )

    assert result["error_type"] == "store"
    assert db_session.query(MealProgram).filter_by(name="Broken copy").count() == 0
    assert db_session.query(MealProgram).count() == 1


def test_create_meal_option(db_session, admin, program):
    result = execute_action(
        "create_meal_option",
        {
            "meal_program_id": program.id,
            "challenge_week": 2,
            "challenge_day": 5,
            "meal_type": "dinner",
            "option_a_name": "Shakshuka",
            "option_b_name": "Risotto",
            "option_b_description": "",
        },
        db_session,
        actor=admin,
    )

    assert result["success"] is True
    assert result["data"]["meal_type"] == "dinner"
    assert result["data"]["option_b_description"] is None


def test_create_meal_option_rejects_taken_slot(db_session, admin, program):
    result = execute_action(
        "create_meal_option",
        {
            "meal_program_id": program.id,
            "challenge_week": 1,
            "challenge_day": 1,
            "meal_type": "lunch",
            "option_a_name": "X",
            "option_b_name": "Y",
        },
        db_session,
        actor=admin,
    )

    assert result["error_type"] == "integrity"


@pytest.mark.parametrize(
    "names, message",
    [
        ({"option_a_name": "", "option_b_name": "Risotto"}, "Option A name is required"),
        ({"option_a_name": "Soup", "option_b_name": None}, "Option B name is required"),
    ],
)
def test_meal_option_names_required(db_session, admin, program, names, message):
    option = db_session.query(MealOption).filter_by(meal_program_id=program.id).first()

    result = execute_action("update_meal_option", {"id": option.id, **names}, db_session, actor=admin)

    assert result == {"error": message, "error_type": "validation"}


def test_update_meal_option(db_session, admin, program):
    option = db_session.query(MealOption).filter_by(meal_program_id=program.id, challenge_day=3).one()

    result = execute_action(
        "update_meal_option",
        {"id": option.id, "option_a_name": "Tuna Wrap", "option_b_name": "Pea Soup"},
        db_session,
        actor=admin,
    )

    assert result["success"] is True
    assert option.option_a_name == "Tuna Wrap"
    assert option.option_a_description is None


# =============================================================================
# Participants
# =============================================================================


def test_add_new_participant_creates_account(db_session, admin, identity, make_cohort):
    cohort = make_cohort()

    result = execute_action(
        "add_participant",
        {"email": " New.Person@Example.com ", "full_name": "New Person", "cohort_id": cohort.id},
        db_session,
        actor=admin,
        identity=identity,
    )

    assert result["success"] is True
    assert result["existing"] is False
    assert identity.created == [("new.person@example.com", "challenge")]
    profile = db_session.query(Profile).filter_by(email="new.person@example.com").one()
    assert profile.cohort_id == cohort.id
    assert result["enrollment"]["status"] == "active"


def test_add_existing_participant_moves_them(db_session, admin, identity, member, make_cohort):
    first = make_cohort("Winter")
    second = make_cohort("Spring")
    enrollment.enroll(db_session, member, first)

    result = execute_action(
        "add_participant",
        {"email": "MEMBER@example.com", "cohort_id": second.id},
        db_session,
        actor=admin,
        identity=identity,
    )

    assert result["existing"] is True
    assert identity.created == []
    assert member.cohort_id == second.id
    statuses = {
        r.cohort_id: r.status
        for r in db_session.query(CohortParticipant).filter_by(user_id=member.id)
    }
    assert statuses == {first.id: EnrollmentStatus.COMPLETED, second.id: EnrollmentStatus.ACTIVE}


def test_add_participant_rejects_invalid_email(db_session, admin, identity):
    result = execute_action(
        "add_participant", {"email": "not-an-email"}, db_session, actor=admin, identity=identity
    )

    assert result["error_type"] == "validation"
    assert "email" in result["error"]


@pytest.mark.parametrize("account_fixture", ["viewer", "admin"])
def test_add_participant_refuses_dashboard_accounts(request, db_session, admin, identity, make_cohort, account_fixture):
    account = request.getfixturevalue(account_fixture)
    cohort = make_cohort()

    result = execute_action(
        "add_participant",
        {"email": account.email, "cohort_id": cohort.id},
        db_session,
        actor=admin,
        identity=identity,
    )

    assert result == {"error": f"{account.email} is a dashboard account", "error_type": "validation"}
    assert identity.created == []
    assert db_session.query(CohortParticipant).filter_by(user_id=account.id).count() == 0
    assert account.cohort_id is None


def test_update_participant_reassigns_cohort(db_session, admin, member, make_cohort):
    first = make_cohort("Winter")
    second = make_cohort("Spring")
    enrollment.enroll(db_session, member, first)

    result = execute_action(
        "update_participant",
        {"id": member.id, "full_name": "Mo M.", "cohort_id": second.id},
        db_session,
        actor=admin,
    )

    assert result["success"] is True
    assert member.full_name == "Mo M."
    assert enrollment.current_cohort_id(db_session, member.id) == second.id


def test_update_participant_unassigns(db_session, admin, member, make_cohort):
    cohort = make_cohort()
    enrollment.enroll(db_session, member, cohort)

    execute_action("update_participant", {"id": member.id, "cohort_id": ""}, db_session, actor=admin)

    assert member.cohort_id is None
    assert enrollment.find_enrollment(db_session, member.id, cohort.id).status == EnrollmentStatus.LEFT


def test_remove_participant(db_session, admin, member, make_cohort):
    cohort = make_cohort()
    enrollment.enroll(db_session, member, cohort)

    result = execute_action(
        "remove_participant", {"user_id": member.id, "cohort_id": cohort.id}, db_session, actor=admin
    )

    assert result["enrollment"]["status"] == "left"
    assert result["enrollment"]["left_at"] is not None

    again = execute_action(
        "remove_participant", {"user_id": member.id, "cohort_id": cohort.id}, db_session, actor=admin
    )
    assert again["error_type"] == "not_found"


def test_delete_participant(db_session, admin, identity, member, make_cohort):
    cohort = make_cohort()
    enrollment.enroll(db_session, member, cohort)
    user_id = member.id

    result = execute_action("delete_participant", {"id": user_id}, db_session, actor=admin, identity=identity)

    assert result == {"success": True, "deleted": user_id}
    assert identity.deleted == [user_id]
    assert db_session.get(Profile, user_id) is None
    assert db_session.query(CohortParticipant).filter_by(user_id=user_id).count() == 0
