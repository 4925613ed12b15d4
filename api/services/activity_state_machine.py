"""Activity status transitions, schedule edits, creation and deletion.

Every public operation runs as one transaction scoped to the activity's
application: the application row is locked first, sibling activities are
read fresh, the change is validated against them, and the whole call
commits or fails as a unit.

Transition rules:
    Scheduled -> Completed
    Completed -> Passed | Failed
    Passed, Failed, NoShow are terminal
    a Withdrawn application allows no transitions at all
    Completed needs the first step or a Passed predecessor
    any transition needs a scheduled date; Failed needs notes
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from api.config.settings import settings
from api.middleware.error_handler import (
    ActivityValidationError,
    DuplicateStepError,
    HasProgressError,
    OrderingError,
    PrecedingStepMissingError,
    TransitionNotAllowedError,
)
from api.models import (
    Activity,
    ActivityStatus,
    ActivityType,
    Application,
    ApplicationStatus,
    ProcessStep,
    ACTIVITY_CREATION_STATUSES,
    ACTIVITY_TRANSITIONS,
    SCHEDULE_LOCKED_STATUSES,
)
from api.models.application_status_changes import (
    TRIGGER_ACTIVITY_COMPLETED,
    TRIGGER_FIRST_ACTIVITY,
)
from api.services.activity_store import ActivityStore, unit_of_work
from api.services.application_status import ApplicationStatusAggregator
from api.services.creation_policy import CreationPolicy, default_policy
from api.services.process_catalog import ProcessCatalog, is_first_step, previous_step
from api.utils.time import to_utc, utc_now

logger = structlog.get_logger()

SUGGESTED_GAP = timedelta(minutes=1)


@dataclass
class TransitionResult:
    """Outcome of a status transition, including any cascade it caused."""

    activity: Activity
    from_status: ActivityStatus
    to_status: ActivityStatus
    application_advanced_to: Optional[ApplicationStatus] = None


@dataclass
class ScheduleResult:
    activity: Activity
    warnings: list[str] = field(default_factory=list)


@dataclass
class CreateResult:
    activity: Activity
    application_advanced_to: Optional[ApplicationStatus] = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class PipelineContext:
    """Locked application with its ordered steps and current activities."""

    application: Application
    steps: list[ProcessStep]
    activities_by_step: dict[int, Activity]

    def step(self, step_id: int) -> Optional[ProcessStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


def allowed_transitions(activity: Activity, application: Application) -> frozenset[ActivityStatus]:
    """Statuses the activity may move to next; none once the application is withdrawn."""
    if application.status == ApplicationStatus.WITHDRAWN:
        return frozenset()
    return ACTIVITY_TRANSITIONS[ActivityStatus(activity.status)]


class ActivityStateMachine:
    """Validates and applies changes to a single activity."""

    def __init__(
        self,
        db: Session,
        creation_policy: Optional[CreationPolicy] = None,
        aggregator: Optional[ApplicationStatusAggregator] = None,
    ):
        self.db = db
        self.store = ActivityStore(db)
        self.catalog = ProcessCatalog(db)
        self.aggregator = aggregator or ApplicationStatusAggregator(db)
        self.creation_policy = creation_policy or default_policy()

    # Queries

    def load_context(self, application_id: int) -> PipelineContext:
        """Lock the application and read its steps and activities fresh."""
        application = self.store.lock_application(application_id)
        return PipelineContext(
            application=application,
            steps=self.catalog.steps_for_application(application),
            activities_by_step=self.store.by_step(application_id),
        )

    def allowed_transitions(
        self,
        activity: Activity,
        application: Application,
    ) -> frozenset[ActivityStatus]:
        return allowed_transitions(activity, application)

    def suggest_schedule(self, activity_id: int, now: Optional[datetime] = None) -> Optional[datetime]:
        """Default date offered when editing an activity's schedule.

        The existing date if any; "now" for the first step; one minute
        after the preceding step's date when it has one; otherwise None.
        """
        activity = self.store.get(activity_id)
        if activity.scheduled_date:
            return activity.scheduled_date

        application = self.db.query(Application).filter(Application.id == activity.application_id).first()
        steps = self.catalog.steps_for_application(application)
        context = PipelineContext(application, steps, self.store.by_step(application.id))
        step = context.step(activity.process_step_id)
        if step is None:
            return None
        if is_first_step(steps, step):
            return now or utc_now()

        previous = previous_step(steps, step)
        previous_activity = context.activities_by_step.get(previous.id)
        if previous_activity and previous_activity.scheduled_date:
            return previous_activity.scheduled_date + SUGGESTED_GAP
        return None

    # Mutations

    def transition(
        self,
        activity_id: int,
        new_status: ActivityStatus,
        notes: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> TransitionResult:
        """Move an activity to ``new_status`` and run the application cascade.

        Raises:
            TransitionNotAllowedError: Withdrawn application, status not in the
                allowed set, or preceding step not yet Passed
            ActivityValidationError: No schedule, or Failed without notes
        """
        application_id = self.store.get(activity_id).application_id

        with unit_of_work(self.db):
            context = self.load_context(application_id)
            activity = self.store.get(activity_id)
            self.db.refresh(activity)
            current = ActivityStatus(activity.status)
            new_status = ActivityStatus(new_status)

            if context.application.status == ApplicationStatus.WITHDRAWN:
                raise TransitionNotAllowedError(
                    "Application has been withdrawn; its activities can no longer change",
                    current_status=current.value,
                    requested_status=new_status.value,
                    reason="application_withdrawn",
                )

            allowed = self.allowed_transitions(activity, context.application)
            if new_status not in allowed:
                raise TransitionNotAllowedError(
                    f"Cannot move activity from {current.value} to {new_status.value}",
                    current_status=current.value,
                    requested_status=new_status.value,
                    allowed=sorted(s.value for s in allowed),
                    reason="terminal_status" if not allowed else "not_allowed",
                )

            if new_status == ActivityStatus.COMPLETED:
                self._check_gating(context, activity, current)

            if activity.scheduled_date is None:
                raise ActivityValidationError("schedule required", field="scheduledDate")

            notes = notes.strip() if notes else None
            if new_status == ActivityStatus.FAILED and not notes:
                raise ActivityValidationError(
                    "A reason is required when marking an activity as Failed",
                    field="notes",
                )

            activity.status = new_status
            if notes:
                activity.notes = notes
            self.db.flush()

            advanced_to = None
            if new_status == ActivityStatus.COMPLETED:
                advanced_to = self.aggregator.advance_to_interviewing(
                    context.application,
                    trigger=TRIGGER_ACTIVITY_COMPLETED,
                    user_id=user_id,
                )
            elif new_status == ActivityStatus.PASSED:
                advanced_to = self.aggregator.recompute_hired_if_eligible(
                    application_id,
                    user_id=user_id,
                )

        logger.info(
            "Activity status changed",
            activity_id=activity_id,
            application_id=application_id,
            from_status=current.value,
            to_status=new_status.value,
            application_advanced_to=advanced_to.value if advanced_to else None,
        )
        return TransitionResult(
            activity=activity,
            from_status=current,
            to_status=new_status,
            application_advanced_to=advanced_to,
        )

    def set_schedule(
        self,
        activity_id: int,
        new_date: datetime,
        user_id: Optional[str] = None,
    ) -> ScheduleResult:
        """Set an activity's scheduled date.

        Raises:
            TransitionNotAllowedError: The activity has left Scheduled
            PrecedingStepMissingError: The previous step has no activity
            OrderingError: The date breaks the order of the sibling steps
        """
        if new_date is None:
            raise ActivityValidationError("A scheduled date is required", field="scheduledDate")
        new_date = to_utc(new_date)
        application_id = self.store.get(activity_id).application_id

        with unit_of_work(self.db):
            context = self.load_context(application_id)
            activity = self.store.get(activity_id)
            self.db.refresh(activity)
            current = ActivityStatus(activity.status)

            if current in SCHEDULE_LOCKED_STATUSES:
                raise TransitionNotAllowedError(
                    f"The schedule of a {current.value} activity can no longer be changed",
                    current_status=current.value,
                    reason="schedule_locked",
                )

            step = self._step_of(context, activity.process_step_id)
            self._check_schedule(context, step, new_date)
            warnings = self._schedule_warnings(context, step, new_date)

            previous_date = activity.scheduled_date
            activity.scheduled_date = new_date
            self.db.flush()

        logger.info(
            "Activity rescheduled",
            activity_id=activity_id,
            application_id=application_id,
            previous_date=previous_date.isoformat() if previous_date else None,
            scheduled_date=new_date.isoformat(),
            user_id=user_id,
        )
        return ScheduleResult(activity=activity, warnings=warnings)

    def create_activity(
        self,
        application_id: int,
        process_step_id: int,
        activity_type: ActivityType = ActivityType.ONLINE,
        scheduled_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> CreateResult:
        """Create the activity for one step of an application.

        Raises:
            TransitionNotAllowedError: Application status forbids creation, or the
                creation policy refuses the step
            ActivityValidationError: Step is not part of the application's process
            DuplicateStepError: The step already has an activity
            PrecedingStepMissingError, OrderingError: Invalid scheduled date
        """
        with unit_of_work(self.db):
            context = self.load_context(application_id)
            result = self.create_in_context(
                context,
                process_step_id,
                activity_type=activity_type,
                scheduled_date=scheduled_date,
                notes=notes,
                user_id=user_id,
            )
        return result

    def create_in_context(
        self,
        context: PipelineContext,
        process_step_id: int,
        activity_type: ActivityType = ActivityType.ONLINE,
        scheduled_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> CreateResult:
        """Creation path shared with the auto-provisioner.

        Expects ``context`` to come from ``load_context`` inside the caller's
        transaction; flushes but does not commit.
        """
        application = context.application
        status = ApplicationStatus(application.status)
        if status not in ACTIVITY_CREATION_STATUSES:
            raise TransitionNotAllowedError(
                f"Activities cannot be created for a {status.value} application",
                current_status=status.value,
                reason="application_status",
            )

        step = context.step(process_step_id)
        if step is None:
            raise ActivityValidationError(
                "Process step is not part of this application's hiring process",
                field="processStepId",
                processStepId=process_step_id,
            )

        existing = context.activities_by_step.get(step.id)
        if existing is not None:
            raise DuplicateStepError(step.step_name, existing.id)

        refusal = self.creation_policy(application, step, context.steps, context.activities_by_step)
        if refusal:
            raise TransitionNotAllowedError(
                refusal,
                requested_status=ActivityStatus.SCHEDULED.value,
                reason="creation_policy",
            )

        warnings = []
        scheduled_date = to_utc(scheduled_date)
        if scheduled_date is not None:
            self._check_schedule(context, step, scheduled_date)
            warnings = self._schedule_warnings(context, step, scheduled_date)

        is_first_activity = not context.activities_by_step
        activity = self.store.add(Activity(
            application_id=application.id,
            process_step_id=step.id,
            activity_type=ActivityType(activity_type),
            status=ActivityStatus.SCHEDULED,
            scheduled_date=scheduled_date,
            notes=notes,
        ))
        context.activities_by_step[step.id] = activity

        advanced_to = None
        if is_first_activity:
            advanced_to = self.aggregator.advance_to_interviewing(
                application,
                trigger=TRIGGER_FIRST_ACTIVITY,
                user_id=user_id,
            )

        logger.info(
            "Activity created",
            activity_id=activity.id,
            application_id=application.id,
            step_order=step.step_order,
            step_name=step.step_name,
            scheduled=scheduled_date is not None,
        )
        return CreateResult(activity=activity, application_advanced_to=advanced_to, warnings=warnings)

    def delete_activity(self, activity_id: int) -> None:
        """Delete a single activity that has not left Scheduled."""
        application_id = self.store.get(activity_id).application_id

        with unit_of_work(self.db):
            self.store.lock_application(application_id)
            activity = self.store.get(activity_id)
            self.db.refresh(activity)
            if activity.status != ActivityStatus.SCHEDULED:
                raise HasProgressError([activity.id])
            self.store.delete(activity)

        logger.info("Activity deleted", activity_id=activity_id, application_id=application_id)

    def bulk_delete_activities(self, application_id: int) -> int:
        """Delete all of an application's activities, only while none has progressed."""
        with unit_of_work(self.db):
            self.store.lock_application(application_id)
            activities = self.store.list_for_application(application_id)
            progressed = [a.id for a in activities if a.status != ActivityStatus.SCHEDULED]
            if progressed:
                raise HasProgressError(progressed)
            deleted = self.store.delete_all(activities)

        logger.info("Activities deleted", application_id=application_id, count=deleted)
        return deleted

    # Validation helpers

    def _step_of(self, context: PipelineContext, step_id: int) -> ProcessStep:
        step = context.step(step_id)
        if step is None:
            raise ActivityValidationError(
                "Process step is not part of this application's hiring process",
                field="processStepId",
                processStepId=step_id,
            )
        return step

    def _check_gating(
        self,
        context: PipelineContext,
        activity: Activity,
        current: ActivityStatus,
    ) -> None:
        step = self._step_of(context, activity.process_step_id)
        if is_first_step(context.steps, step):
            return
        previous = previous_step(context.steps, step)
        previous_activity = context.activities_by_step.get(previous.id)
        if previous_activity is None or previous_activity.status != ActivityStatus.PASSED:
            raise TransitionNotAllowedError(
                f"Step {previous.step_order}. {previous.step_name} must be Passed "
                f"before {step.step_name} can be completed",
                current_status=current.value,
                requested_status=ActivityStatus.COMPLETED.value,
                allowed=[],
                reason="preceding_step_not_passed",
            )

    def _check_schedule(
        self,
        context: PipelineContext,
        step: ProcessStep,
        new_date: datetime,
    ) -> None:
        """Enforce that scheduled dates never decrease along the step order."""
        index = context.steps.index(step)

        if index > 0:
            previous = context.steps[index - 1]
            if previous.id not in context.activities_by_step:
                raise PrecedingStepMissingError(previous.step_name, previous.step_order)

        dated = self._sibling_dates(context, exclude_step_id=step.id)

        for earlier in reversed(context.steps[:index]):
            earlier_date = dated.get(earlier.id)
            if earlier_date is None:
                continue
            if new_date < earlier_date:
                raise OrderingError(
                    f"{step.step_name} must be scheduled no earlier than "
                    f"{earlier.step_name} ({earlier_date.isoformat()}Z)",
                    step_name=earlier.step_name,
                    step_order=earlier.step_order,
                    conflicting_date=earlier_date,
                )
            break

        for later in context.steps[index + 1:]:
            later_date = dated.get(later.id)
            if later_date is None:
                continue
            if new_date > later_date:
                raise OrderingError(
                    f"{step.step_name} must be scheduled no later than "
                    f"{later.step_name} ({later_date.isoformat()}Z)",
                    step_name=later.step_name,
                    step_order=later.step_order,
                    conflicting_date=later_date,
                )
            break

    def _sibling_dates(self, context: PipelineContext, exclude_step_id: int) -> dict[int, datetime]:
        schedules = self.store.list_sibling_schedules(context.application.id)
        schedules.pop(exclude_step_id, None)
        return schedules

    def _schedule_warnings(
        self,
        context: PipelineContext,
        step: ProcessStep,
        new_date: datetime,
    ) -> list[str]:
        """Advisory notes about a valid but unusual schedule."""
        warnings = []
        index = context.steps.index(step)

        if index == 0 and context.application.created_at and new_date < context.application.created_at:
            warnings.append(
                f"{step.step_name} is scheduled before the application was created "
                f"({context.application.created_at.isoformat()}Z)"
            )

        reference = None
        dated = self._sibling_dates(context, exclude_step_id=step.id)
        for earlier in reversed(context.steps[:index]):
            if earlier.id in dated:
                reference = dated[earlier.id]
                break
        if reference is None:
            reference = utc_now()

        far_days = settings.SCHEDULE_FAR_WARNING_DAYS
        if abs(new_date - reference) > timedelta(days=far_days):
            warnings.append(
                f"{step.step_name} is scheduled more than {far_days} days away "
                f"from {reference.isoformat()}Z"
            )
        return warnings
