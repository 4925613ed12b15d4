"""Application status changes and the cascades between activities and applications.

``ApplicationCommandService`` is the only writer of ``Application.status``.
``ApplicationStatusAggregator`` decides when activity changes move the
application forward (Interviewing, Hired) and pushes a withdrawal down onto
the activities.

Methods here flush but do not commit, except for the recruiter actions
(``withdraw_application``, ``reject_application``) which own their
transaction.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from api.middleware.error_handler import NotFoundError, TransitionNotAllowedError
from api.models import (
    Activity,
    ActivityStatus,
    Application,
    ApplicationStatus,
    ApplicationStatusChange,
    APPLICATION_TRANSITIONS,
)
from api.models.application_status_changes import (
    TRIGGER_ALL_STEPS_PASSED,
    TRIGGER_REJECT,
    TRIGGER_WITHDRAW,
    VALID_TRIGGERS,
)
from api.services.activity_store import ActivityStore, unit_of_work
from api.services.process_catalog import ProcessCatalog

logger = structlog.get_logger()

WITHDRAWAL_NOTE = "Application withdrawn"


@dataclass
class ActivityChange:
    """One activity status forced by a cascade."""

    activity_id: int
    from_status: ActivityStatus
    to_status: ActivityStatus


@dataclass
class WithdrawalResult:
    application: Application
    from_status: ApplicationStatus
    changes: list[ActivityChange] = field(default_factory=list)


class ApplicationCommandService:
    """Validated application status updates with an audit trail."""

    def __init__(self, db: Session):
        self.db = db

    def update_application_status(
        self,
        application_id: int,
        status: ApplicationStatus,
        trigger: str,
        user_id: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> ApplicationStatusChange:
        """Move an application to ``status``.

        Raises:
            NotFoundError: Unknown application
            TransitionNotAllowedError: ``status`` is not reachable from the current status
        """
        if trigger not in VALID_TRIGGERS:
            raise ValueError(f"Unknown status change trigger: {trigger}")

        application = self.db.query(Application).filter(Application.id == application_id).first()
        if not application:
            raise NotFoundError("Application", application_id)

        from_status = ApplicationStatus(application.status)
        allowed = APPLICATION_TRANSITIONS[from_status]
        if status not in allowed:
            raise TransitionNotAllowedError(
                f"Cannot move application from {from_status.value} to {status.value}",
                current_status=from_status.value,
                requested_status=status.value,
                allowed=sorted(s.value for s in allowed),
            )

        application.status = status
        change = ApplicationStatusChange(
            application_id=application_id,
            from_status=from_status.value,
            to_status=status.value,
            trigger=trigger,
            user_id=user_id,
            comment=comment,
        )
        self.db.add(change)
        self.db.flush()

        logger.info(
            "Application status changed",
            application_id=application_id,
            from_status=from_status.value,
            to_status=status.value,
            trigger=trigger,
            user_id=user_id,
        )
        return change


class ApplicationStatusAggregator:
    """Derives the application's status from its activities."""

    def __init__(
        self,
        db: Session,
        commands: Optional[ApplicationCommandService] = None,
    ):
        self.db = db
        self.commands = commands or ApplicationCommandService(db)
        self.catalog = ProcessCatalog(db)
        self.store = ActivityStore(db)

    def advance_to_interviewing(
        self,
        application: Application,
        trigger: str,
        user_id: Optional[str] = None,
    ) -> Optional[ApplicationStatus]:
        """Submitted -> Interviewing; any other status is left alone."""
        if application.status != ApplicationStatus.SUBMITTED:
            return None
        self.commands.update_application_status(
            application.id,
            ApplicationStatus.INTERVIEWING,
            trigger=trigger,
            user_id=user_id,
        )
        return ApplicationStatus.INTERVIEWING

    def all_steps_passed(self, application: Application) -> bool:
        steps = self.catalog.steps_for_application(application)
        if not steps:
            return False
        activities = self.store.by_step(application.id)
        return all(
            step.id in activities and activities[step.id].status == ActivityStatus.PASSED
            for step in steps
        )

    def recompute_hired_if_eligible(
        self,
        application_id: int,
        user_id: Optional[str] = None,
    ) -> Optional[ApplicationStatus]:
        """Hire the application once every template step has a Passed activity.

        Only an Interviewing application is hired, so running this after
        every Passed transition moves it to Hired exactly once.
        """
        application = self.db.query(Application).filter(Application.id == application_id).first()
        if not application:
            raise NotFoundError("Application", application_id)
        if application.status != ApplicationStatus.INTERVIEWING:
            return None
        if not self.all_steps_passed(application):
            return None

        self.commands.update_application_status(
            application_id,
            ApplicationStatus.HIRED,
            trigger=TRIGGER_ALL_STEPS_PASSED,
            user_id=user_id,
        )
        return ApplicationStatus.HIRED

    def cascade_withdrawal(self, application_id: int) -> list[ActivityChange]:
        """Close the activities of a withdrawn application.

        Completed becomes Failed (the candidate attended but was never
        evaluated), Scheduled becomes NoShow, terminal activities are left
        untouched. Running it again changes nothing.
        """
        application = self.db.query(Application).filter(Application.id == application_id).first()
        if not application:
            raise NotFoundError("Application", application_id)
        if application.status != ApplicationStatus.WITHDRAWN:
            raise TransitionNotAllowedError(
                "Only a withdrawn application can cascade to its activities",
                current_status=ApplicationStatus(application.status).value,
                requested_status=ApplicationStatus.WITHDRAWN.value,
            )

        changes = []
        for activity in self.store.list_for_application(application_id):
            forced = _withdrawal_status(activity)
            if forced is None:
                continue
            changes.append(ActivityChange(activity.id, ActivityStatus(activity.status), forced))
            activity.status = forced
            if not activity.notes:
                activity.notes = WITHDRAWAL_NOTE
        self.db.flush()

        if changes:
            logger.info(
                "Withdrawal cascaded to activities",
                application_id=application_id,
                changed=[(c.activity_id, c.to_status.value) for c in changes],
            )
        return changes

    def withdraw_application(
        self,
        application_id: int,
        user_id: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> WithdrawalResult:
        """Withdraw an application and close its activities in one transaction."""
        with unit_of_work(self.db):
            application = self.store.lock_application(application_id)
            from_status = ApplicationStatus(application.status)
            self.commands.update_application_status(
                application_id,
                ApplicationStatus.WITHDRAWN,
                trigger=TRIGGER_WITHDRAW,
                user_id=user_id,
                comment=comment,
            )
            changes = self.cascade_withdrawal(application_id)

        return WithdrawalResult(application=application, from_status=from_status, changes=changes)

    def reject_application(
        self,
        application_id: int,
        user_id: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> ApplicationStatusChange:
        """Reject an application. Activities keep their status."""
        with unit_of_work(self.db):
            self.store.lock_application(application_id)
            change = self.commands.update_application_status(
                application_id,
                ApplicationStatus.REJECTED,
                trigger=TRIGGER_REJECT,
                user_id=user_id,
                comment=comment,
            )
        return change


def _withdrawal_status(activity: Activity) -> Optional[ActivityStatus]:
    if activity.status == ActivityStatus.COMPLETED:
        return ActivityStatus.FAILED
    if activity.status == ActivityStatus.SCHEDULED:
        return ActivityStatus.NO_SHOW
    return None
