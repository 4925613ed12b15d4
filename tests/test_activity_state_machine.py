"""Status transitions, schedule edits, creation and deletion of activities."""

from datetime import datetime, timedelta, timezone

import pytest

from api.middleware.error_handler import (
    ActivityValidationError,
    DuplicateStepError,
    HasProgressError,
    OrderingError,
    PrecedingStepMissingError,
    TransitionNotAllowedError,
)
from api.models import Activity, ActivityStatus, ActivityType, ApplicationStatus, ApplicationStatusChange
from api.services.activity_state_machine import ActivityStateMachine

pytestmark = pytest.mark.unit

JAN_1 = datetime(2024, 1, 1, 9, 0)


def complete_and_pass(machine, activity_id):
    machine.transition(activity_id, ActivityStatus.COMPLETED)
    return machine.transition(activity_id, ActivityStatus.PASSED)


# Creation

def test_first_activity_moves_application_to_interviewing(db, two_step):
    application, screening, _ = two_step
    machine = ActivityStateMachine(db)

    result = machine.create_activity(application.id, screening.id, scheduled_date=JAN_1)

    assert result.activity.status == ActivityStatus.SCHEDULED
    assert result.activity.activity_type == ActivityType.ONLINE
    assert result.application_advanced_to == ApplicationStatus.INTERVIEWING
    db.refresh(application)
    assert application.status == ApplicationStatus.INTERVIEWING

    change = db.query(ApplicationStatusChange).one()
    assert change.trigger == "first_activity_created"


def test_second_activity_does_not_advance_again(db, two_step):
    application, screening, interview = two_step
    machine = ActivityStateMachine(db)
    machine.create_activity(application.id, screening.id)

    result = machine.create_activity(application.id, interview.id)

    assert result.application_advanced_to is None
    assert db.query(ApplicationStatusChange).count() == 1


def test_duplicate_step_is_rejected(db, two_step):
    application, screening, _ = two_step
    machine = ActivityStateMachine(db)
    first = machine.create_activity(application.id, screening.id).activity

    with pytest.raises(DuplicateStepError) as exc:
        machine.create_activity(application.id, screening.id)

    assert exc.value.details == {"stepName": "Screening", "activityId": first.id}
    assert db.query(Activity).count() == 1


def test_failed_step_cannot_be_redone(db, factory, two_step):
    application, screening, _ = two_step
    factory.activity(application, screening, ActivityStatus.FAILED, JAN_1, notes="No show of skills")

    with pytest.raises(DuplicateStepError):
        ActivityStateMachine(db).create_activity(application.id, screening.id)


def test_step_from_another_template_is_rejected(db, factory, two_step):
    application, _, _ = two_step
    other = factory.template("Assessment", name="Other process")
    (assessment,) = factory.steps(other)

    with pytest.raises(ActivityValidationError) as exc:
        ActivityStateMachine(db).create_activity(application.id, assessment.id)

    assert exc.value.details["field"] == "processStepId"


@pytest.mark.parametrize("status", [
    ApplicationStatus.REJECTED,
    ApplicationStatus.WITHDRAWN,
    ApplicationStatus.EXPIRED,
    ApplicationStatus.CLOSED_BY_SYSTEM,
    ApplicationStatus.HIRED,
])
def test_creation_requires_open_application(db, factory, status):
    template = factory.template("Screening")
    application = factory.application(factory.job_request(template), status=status)
    (screening,) = factory.steps(template)

    with pytest.raises(TransitionNotAllowedError) as exc:
        ActivityStateMachine(db).create_activity(application.id, screening.id)

    assert exc.value.details["reason"] == "application_status"
    assert db.query(Activity).count() == 0


def test_creation_policy_refusal(db, two_step):
    application, screening, interview = two_step

    def only_first_step(application, step, steps, activities_by_step):
        return None if step.step_order == 1 else "Only the first step may be planned"

    machine = ActivityStateMachine(db, creation_policy=only_first_step)
    machine.create_activity(application.id, screening.id)

    with pytest.raises(TransitionNotAllowedError) as exc:
        machine.create_activity(application.id, interview.id)

    assert exc.value.message == "Only the first step may be planned"


def test_create_with_date_checks_ordering(db, factory, two_step):
    application, screening, interview = two_step
    factory.activity(application, screening, scheduled_date=JAN_1)

    with pytest.raises(OrderingError):
        ActivityStateMachine(db).create_activity(
            application.id, interview.id, scheduled_date=JAN_1 - timedelta(days=1),
        )
    assert db.query(Activity).count() == 1


def test_create_with_date_requires_preceding_activity(db, two_step):
    application, _, interview = two_step

    with pytest.raises(PrecedingStepMissingError) as exc:
        ActivityStateMachine(db).create_activity(application.id, interview.id, scheduled_date=JAN_1)

    assert exc.value.details == {"stepName": "Screening", "stepOrder": 1}


# Transitions

def test_full_happy_path_hires_application(db, two_step):
    application, screening, interview = two_step
    machine = ActivityStateMachine(db)
    first = machine.create_activity(application.id, screening.id, scheduled_date=JAN_1).activity
    second = machine.create_activity(
        application.id, interview.id, scheduled_date=JAN_1 + timedelta(days=2),
    ).activity

    complete_and_pass(machine, first.id)
    machine.transition(second.id, ActivityStatus.COMPLETED)
    result = machine.transition(second.id, ActivityStatus.PASSED, notes="Strong hire")

    assert result.from_status == ActivityStatus.COMPLETED
    assert result.to_status == ActivityStatus.PASSED
    assert result.application_advanced_to == ApplicationStatus.HIRED
    db.refresh(application)
    assert application.status == ApplicationStatus.HIRED


def test_completed_advances_submitted_application(db, factory, two_step):
    application, screening, _ = two_step
    activity = factory.activity(application, screening, scheduled_date=JAN_1)

    result = ActivityStateMachine(db).transition(activity.id, ActivityStatus.COMPLETED)

    assert result.application_advanced_to == ApplicationStatus.INTERVIEWING
    change = db.query(ApplicationStatusChange).one()
    assert change.trigger == "activity_completed"


def test_transition_requires_schedule(db, two_step):
    application, screening, _ = two_step
    machine = ActivityStateMachine(db)
    activity = machine.create_activity(application.id, screening.id).activity

    with pytest.raises(ActivityValidationError) as exc:
        machine.transition(activity.id, ActivityStatus.COMPLETED)

    assert exc.value.message == "schedule required"
    db.refresh(activity)
    assert activity.status == ActivityStatus.SCHEDULED


def test_failed_requires_notes(db, two_step):
    application, screening, _ = two_step
    machine = ActivityStateMachine(db)
    activity = machine.create_activity(application.id, screening.id, scheduled_date=JAN_1).activity
    machine.transition(activity.id, ActivityStatus.COMPLETED)

    with pytest.raises(ActivityValidationError):
        machine.transition(activity.id, ActivityStatus.FAILED, notes="   ")

    result = machine.transition(activity.id, ActivityStatus.FAILED, notes="Could not explain past work")
    assert result.activity.notes == "Could not explain past work"


def test_scheduled_cannot_skip_to_passed(db, two_step):
    application, screening, _ = two_step
    machine = ActivityStateMachine(db)
    activity = machine.create_activity(application.id, screening.id, scheduled_date=JAN_1).activity

    with pytest.raises(TransitionNotAllowedError) as exc:
        machine.transition(activity.id, ActivityStatus.PASSED)

    assert exc.value.details["currentStatus"] == "Scheduled"
    assert exc.value.details["allowed"] == ["Completed"]


@pytest.mark.parametrize("terminal", [ActivityStatus.PASSED, ActivityStatus.FAILED, ActivityStatus.NO_SHOW])
@pytest.mark.parametrize("target", list(ActivityStatus))
def test_terminal_statuses_never_change(db, factory, two_step, terminal, target):
    application, screening, _ = two_step
    activity = factory.activity(application, screening, terminal, JAN_1, notes="done")

    with pytest.raises(TransitionNotAllowedError):
        ActivityStateMachine(db).transition(activity.id, target, notes="again")

    db.refresh(activity)
    assert activity.status == terminal


def test_withdrawn_application_allows_no_transitions(db, factory, two_step):
    application, screening, _ = two_step
    activity = factory.activity(application, screening, ActivityStatus.COMPLETED, JAN_1)
    application.status = ApplicationStatus.WITHDRAWN
    db.commit()

    machine = ActivityStateMachine(db)
    assert machine.allowed_transitions(activity, application) == frozenset()
    with pytest.raises(TransitionNotAllowedError) as exc:
        machine.transition(activity.id, ActivityStatus.PASSED)

    assert exc.value.details["reason"] == "application_withdrawn"


def test_completing_step_two_before_step_one_passed(db, two_step):
    application, screening, interview = two_step
    machine = ActivityStateMachine(db)
    machine.create_activity(application.id, screening.id, scheduled_date=JAN_1)
    second = machine.create_activity(
        application.id, interview.id, scheduled_date=JAN_1 + timedelta(hours=2),
    ).activity

    with pytest.raises(TransitionNotAllowedError) as exc:
        machine.transition(second.id, ActivityStatus.COMPLETED)

    assert "Screening" in exc.value.message
    assert exc.value.details["reason"] == "preceding_step_not_passed"


def test_gating_is_checked_before_missing_schedule(db, two_step):
    application, screening, interview = two_step
    machine = ActivityStateMachine(db)
    machine.create_activity(application.id, screening.id, scheduled_date=JAN_1)
    unscheduled = machine.create_activity(application.id, interview.id).activity

    with pytest.raises(TransitionNotAllowedError) as exc:
        machine.transition(unscheduled.id, ActivityStatus.COMPLETED)

    assert exc.value.details["reason"] == "preceding_step_not_passed"


@pytest.mark.parametrize("steps", [2, 3, 5])
def test_gating_holds_for_every_later_step(db, factory, steps):
    template = factory.template(*[f"Step {n}" for n in range(1, steps + 1)])
    application = factory.application(factory.job_request(template))
    ordered = factory.steps(template)
    activities = [
        factory.activity(application, step, scheduled_date=JAN_1 + timedelta(hours=i))
        for i, step in enumerate(ordered)
    ]
    machine = ActivityStateMachine(db)

    for k in range(1, steps):
        # predecessor still Scheduled or Completed but not Passed
        with pytest.raises(TransitionNotAllowedError):
            machine.transition(activities[k].id, ActivityStatus.COMPLETED)
        machine.transition(activities[k - 1].id, ActivityStatus.COMPLETED)
        with pytest.raises(TransitionNotAllowedError):
            machine.transition(activities[k].id, ActivityStatus.COMPLETED)
        machine.transition(activities[k - 1].id, ActivityStatus.PASSED)

    machine.transition(activities[-1].id, ActivityStatus.COMPLETED)
    result = machine.transition(activities[-1].id, ActivityStatus.PASSED)
    assert result.application_advanced_to == ApplicationStatus.HIRED


# Scheduling

def test_scheduling_before_passed_preceding_step(db, two_step):
    application, screening, interview = two_step
    machine = ActivityStateMachine(db)
    first = machine.create_activity(application.id, screening.id, scheduled_date=JAN_1).activity
    complete_and_pass(machine, first.id)
    second = machine.create_activity(application.id, interview.id).activity

    with pytest.raises(OrderingError) as exc:
        machine.set_schedule(second.id, datetime(2023, 12, 31, 9, 0, tzinfo=timezone.utc))

    assert exc.value.details == {
        "stepName": "Screening",
        "stepOrder": 1,
        "conflictingDate": "2024-01-01T09:00:00Z",
    }
    db.refresh(second)
    assert second.scheduled_date is None


def test_schedule_after_following_step_is_rejected(db, factory, two_step):
    application, screening, interview = two_step
    first = factory.activity(application, screening, scheduled_date=JAN_1)
    factory.activity(application, interview, scheduled_date=JAN_1 + timedelta(days=1))

    with pytest.raises(OrderingError) as exc:
        ActivityStateMachine(db).set_schedule(first.id, JAN_1 + timedelta(days=2))

    assert exc.value.details["stepName"] == "Interview"


def test_equal_dates_are_allowed(db, factory, two_step):
    application, screening, interview = two_step
    factory.activity(application, screening, scheduled_date=JAN_1)
    second = factory.activity(application, interview)

    # 10:00 at +01:00 is the same instant as 09:00Z
    same_instant = datetime(2024, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=1)))
    result = ActivityStateMachine(db).set_schedule(second.id, same_instant)

    assert result.activity.scheduled_date == JAN_1


def test_ordering_skips_undated_neighbours(db, factory):
    template = factory.template("Screening", "Tech interview", "Final interview")
    application = factory.application(factory.job_request(template))
    screening, tech, final = factory.steps(template)
    factory.activity(application, screening, scheduled_date=JAN_1)
    factory.activity(application, tech)
    third = factory.activity(application, final)

    with pytest.raises(OrderingError) as exc:
        ActivityStateMachine(db).set_schedule(third.id, JAN_1 - timedelta(minutes=1))

    assert exc.value.details["stepName"] == "Screening"


def test_schedule_requires_preceding_activity(db, factory, two_step):
    application, _, interview = two_step
    second = factory.activity(application, interview)

    with pytest.raises(PrecedingStepMissingError) as exc:
        ActivityStateMachine(db).set_schedule(second.id, JAN_1)

    assert "Screening" in exc.value.message


@pytest.mark.parametrize("status", [
    ActivityStatus.COMPLETED,
    ActivityStatus.PASSED,
    ActivityStatus.FAILED,
    ActivityStatus.NO_SHOW,
])
def test_schedule_locked_after_scheduled(db, factory, two_step, status):
    application, screening, _ = two_step
    activity = factory.activity(application, screening, status, JAN_1)

    with pytest.raises(TransitionNotAllowedError) as exc:
        ActivityStateMachine(db).set_schedule(activity.id, JAN_1 + timedelta(hours=1))

    assert exc.value.details["reason"] == "schedule_locked"


def test_schedule_warnings_do_not_block(db, factory, two_step):
    application, screening, interview = two_step
    factory.activity(application, screening, scheduled_date=JAN_1)
    second = factory.activity(application, interview)

    result = ActivityStateMachine(db).set_schedule(second.id, JAN_1 + timedelta(days=30))

    assert result.activity.scheduled_date == JAN_1 + timedelta(days=30)
    assert len(result.warnings) == 1
    assert "more than 7 days" in result.warnings[0]


def test_first_step_before_application_creation_warns(db, factory):
    template = factory.template("Screening")
    application = factory.application(factory.job_request(template), created_at=datetime(2024, 2, 1))
    (screening,) = factory.steps(template)
    activity = factory.activity(application, screening)

    result = ActivityStateMachine(db).set_schedule(activity.id, JAN_1)

    assert any("before the application was created" in w for w in result.warnings)
    assert result.activity.scheduled_date == JAN_1


def test_naive_dates_use_default_timezone(db, factory, two_step, monkeypatch):
    from api.config.settings import settings

    monkeypatch.setattr(settings, "DEFAULT_TIMEZONE", "Asia/Ho_Chi_Minh")
    application, screening, _ = two_step
    activity = factory.activity(application, screening)

    result = ActivityStateMachine(db).set_schedule(activity.id, datetime(2024, 1, 1, 16, 0))

    assert result.activity.scheduled_date == JAN_1


# Suggested schedule

def test_suggest_keeps_existing_date(db, factory, two_step):
    application, screening, _ = two_step
    activity = factory.activity(application, screening, scheduled_date=JAN_1)

    assert ActivityStateMachine(db).suggest_schedule(activity.id) == JAN_1


def test_suggest_now_for_first_step(db, factory, two_step):
    application, screening, _ = two_step
    activity = factory.activity(application, screening)
    now = datetime(2024, 3, 1, 8, 30)

    assert ActivityStateMachine(db).suggest_schedule(activity.id, now=now) == now


def test_suggest_one_minute_after_preceding_step(db, factory, two_step):
    application, screening, interview = two_step
    factory.activity(application, screening, scheduled_date=JAN_1)
    second = factory.activity(application, interview)

    assert ActivityStateMachine(db).suggest_schedule(second.id) == JAN_1 + timedelta(minutes=1)


def test_suggest_nothing_without_preceding_date(db, factory, two_step):
    application, screening, interview = two_step
    factory.activity(application, screening)
    second = factory.activity(application, interview)

    assert ActivityStateMachine(db).suggest_schedule(second.id) is None


# Deletion

def test_delete_scheduled_activity(db, factory, two_step):
    application, screening, _ = two_step
    activity = factory.activity(application, screening)

    ActivityStateMachine(db).delete_activity(activity.id)

    assert db.query(Activity).count() == 0


def test_delete_progressed_activity_is_rejected(db, factory, two_step):
    application, screening, _ = two_step
    activity = factory.activity(application, screening, ActivityStatus.COMPLETED, JAN_1)

    with pytest.raises(HasProgressError):
        ActivityStateMachine(db).delete_activity(activity.id)


def test_bulk_delete_rejected_when_any_activity_progressed(db, factory, two_step):
    application, screening, interview = two_step
    completed = factory.activity(application, screening, ActivityStatus.COMPLETED, JAN_1)
    factory.activity(application, interview)

    with pytest.raises(HasProgressError) as exc:
        ActivityStateMachine(db).bulk_delete_activities(application.id)

    assert exc.value.details["activityIds"] == [completed.id]
    assert db.query(Activity).count() == 2


def test_bulk_delete_removes_all_scheduled(db, factory, two_step):
    application, screening, interview = two_step
    factory.activity(application, screening, scheduled_date=JAN_1)
    factory.activity(application, interview)

    deleted = ActivityStateMachine(db).bulk_delete_activities(application.id)

    assert deleted == 2
    assert db.query(Activity).filter(Activity.application_id == application.id).count() == 0
