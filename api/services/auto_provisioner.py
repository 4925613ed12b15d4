"""Bulk creation of the missing activities of an application's process."""

from dataclasses import dataclass, field
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from api.middleware.error_handler import APIError, TransitionNotAllowedError
from api.models import (
    Activity,
    ActivityType,
    ApplicationStatus,
    ProcessStep,
    ACTIVITY_CREATION_STATUSES,
)
from api.services.activity_state_machine import ActivityStateMachine
from api.services.activity_store import unit_of_work
from api.services.creation_policy import CreationPolicy

logger = structlog.get_logger()


@dataclass
class ProvisionResult:
    """Activities created by one auto-provisioning call.

    When ``stopped_at_step`` is set, the step it names was refused and no
    later step was attempted. Activities created before it are kept.
    """

    created: list[Activity] = field(default_factory=list)
    stopped_at_step: Optional[ProcessStep] = None
    stop_reason: Optional[str] = None
    application_advanced_to: Optional[ApplicationStatus] = None


def auto_note(step: ProcessStep) -> str:
    note = f'Created automatically from step "{step.step_name}"'
    if step.description:
        note = f"{note}: {step.description}"
    return note


class AutoProvisioner:
    """Creates an activity for every step that does not have one yet."""

    def __init__(
        self,
        db: Session,
        creation_policy: Optional[CreationPolicy] = None,
        state_machine: Optional[ActivityStateMachine] = None,
    ):
        self.db = db
        self.state_machine = state_machine or ActivityStateMachine(db, creation_policy=creation_policy)

    def auto_create_activities(
        self,
        application_id: int,
        user_id: Optional[str] = None,
    ) -> ProvisionResult:
        """Walk the steps in order and create the missing activities.

        Steps that already have an activity are skipped. The walk stops at
        the first step the creation rules refuse. Everything runs under a
        single application lock and commits once.

        Raises:
            NotFoundError: Unknown application
            TransitionNotAllowedError: Application status forbids creating activities
        """
        result = ProvisionResult()

        with unit_of_work(self.db):
            context = self.state_machine.load_context(application_id)
            status = ApplicationStatus(context.application.status)
            if status not in ACTIVITY_CREATION_STATUSES:
                raise TransitionNotAllowedError(
                    f"Activities cannot be created for a {status.value} application",
                    current_status=status.value,
                    reason="application_status",
                )

            for step in context.steps:
                if step.id in context.activities_by_step:
                    continue
                try:
                    created = self.state_machine.create_in_context(
                        context,
                        step.id,
                        activity_type=ActivityType.ONLINE,
                        scheduled_date=None,
                        notes=auto_note(step),
                        user_id=user_id,
                    )
                except APIError as e:
                    result.stopped_at_step = step
                    result.stop_reason = e.message
                    break

                result.created.append(created.activity)
                if created.application_advanced_to:
                    result.application_advanced_to = created.application_advanced_to

        logger.info(
            "Activities auto-created",
            application_id=application_id,
            created=len(result.created),
            stopped_at_step=result.stopped_at_step.step_order if result.stopped_at_step else None,
            stop_reason=result.stop_reason,
        )
        return result
