"""Application endpoints: pipeline overview, auto-provisioning and recruiter actions."""

from typing import List

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.config.database import get_db
from api.config.settings import settings
from api.middleware.error_handler import NotFoundError
from api.models import Activity, ActivityStatus, Application, ApplicationStatusChange
from api.schemas.activities import ActivityResponse, BulkDeleteResponse
from api.schemas.applications import (
    ActivityChangeItem,
    ApplicationActionRequest,
    ApplicationResponse,
    AutoCreateResponse,
    IdleResponse,
    StatusChangeItem,
    WithdrawResponse,
)
from api.schemas.process_templates import ProcessStepResponse
from api.services.activity_state_machine import ActivityStateMachine
from api.services.activity_store import ActivityStore
from api.services.application_status import ApplicationStatusAggregator
from api.services.auto_provisioner import AutoProvisioner
from api.services.idle import days_since_last_update, is_idle, last_update_time
from api.services.process_catalog import ProcessCatalog
from api.services.rbac import require_role
from api.utils.time import utc_now

from .activities import build_activity_response, get_application_for_mutation

logger = structlog.get_logger()
router = APIRouter()


def get_application_or_404(db: Session, application_id: int) -> Application:
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise NotFoundError("Application", application_id)
    return application


def build_application_response(db: Session, application: Application) -> ApplicationResponse:
    activities = ActivityStore(db).list_for_application(application.id)
    steps = ProcessCatalog(db).steps_for_application(application)
    return ApplicationResponse(
        id=application.id,
        job_request_id=application.job_request_id,
        cv_id=application.cv_id,
        recruiter_id=application.recruiter_id,
        status=application.status,
        note=application.note,
        activity_count=len(activities),
        passed_count=sum(1 for a in activities if a.status == ActivityStatus.PASSED),
        step_count=len(steps),
        created_at=application.created_at,
        updated_at=application.updated_at,
    )


def ordered_activities(db: Session, application: Application) -> List[Activity]:
    """Activities in process step order."""
    by_step = ActivityStore(db).by_step(application.id)
    steps = ProcessCatalog(db).steps_for_application(application)
    return [by_step[step.id] for step in steps if step.id in by_step]


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    return build_application_response(db, get_application_or_404(db, application_id))


@router.get("/{application_id}/activities", response_model=List[ActivityResponse])
def list_application_activities(
    application_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Activities of an application in process step order."""
    application = get_application_or_404(db, application_id)
    return [build_activity_response(a, application) for a in ordered_activities(db, application)]


@router.post("/{application_id}/auto-create-activities", response_model=AutoCreateResponse)
def auto_create_activities(
    application_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """
    Create unscheduled activities for every step that lacks one.

    Stops at the first step that cannot be created yet and reports it;
    activities created before that step are kept.
    """
    get_application_for_mutation(db, application_id, user)

    result = AutoProvisioner(db).auto_create_activities(application_id, user_id=user.get("sub"))
    stopped_at = result.stopped_at_step
    return AutoCreateResponse(
        created=[build_activity_response(a) for a in result.created],
        stopped_at_step=ProcessStepResponse.model_validate(stopped_at) if stopped_at else None,
        stop_reason=result.stop_reason,
        application_advanced_to=result.application_advanced_to,
    )


@router.delete("/{application_id}/activities", response_model=BulkDeleteResponse)
def delete_application_activities(
    application_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Delete every activity, allowed only while all of them are still Scheduled."""
    get_application_for_mutation(db, application_id, user)

    deleted = ActivityStateMachine(db).bulk_delete_activities(application_id)
    return BulkDeleteResponse(application_id=application_id, deleted=deleted)


@router.post("/{application_id}/withdraw", response_model=WithdrawResponse)
def withdraw_application(
    application_id: int,
    data: ApplicationActionRequest = ApplicationActionRequest(),
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Withdraw the application. Scheduled activities become NoShow, Completed ones Failed."""
    get_application_for_mutation(db, application_id, user)

    result = ApplicationStatusAggregator(db).withdraw_application(
        application_id,
        user_id=user.get("sub"),
        comment=data.comment,
    )
    return WithdrawResponse(
        application=build_application_response(db, result.application),
        from_status=result.from_status,
        changes=[
            ActivityChangeItem(
                activity_id=c.activity_id,
                from_status=c.from_status,
                to_status=c.to_status,
            )
            for c in result.changes
        ],
    )


@router.post("/{application_id}/reject", response_model=ApplicationResponse)
def reject_application(
    application_id: int,
    data: ApplicationActionRequest = ApplicationActionRequest(),
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    application = get_application_for_mutation(db, application_id, user)

    ApplicationStatusAggregator(db).reject_application(
        application_id,
        user_id=user.get("sub"),
        comment=data.comment,
    )
    return build_application_response(db, application)


@router.get("/{application_id}/idle", response_model=IdleResponse)
def get_idle_status(
    application_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Whether the application has gone without progress for IDLE_THRESHOLD_DAYS."""
    application = get_application_or_404(db, application_id)
    activities = ActivityStore(db).list_for_application(application_id)
    now = utc_now()
    threshold = settings.IDLE_THRESHOLD_DAYS

    return IdleResponse(
        application_id=application_id,
        last_update=last_update_time(application, activities),
        days_since_last_update=days_since_last_update(application, activities, now=now),
        threshold_days=threshold,
        is_idle=is_idle(application, activities, threshold_days=threshold, now=now),
    )


@router.get("/{application_id}/status-history", response_model=List[StatusChangeItem])
def get_status_history(
    application_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Status changes of an application, newest first."""
    get_application_or_404(db, application_id)

    changes = (
        db.query(ApplicationStatusChange)
        .filter(ApplicationStatusChange.application_id == application_id)
        .order_by(ApplicationStatusChange.created_at.desc(), ApplicationStatusChange.id.desc())
        .all()
    )
    return [StatusChangeItem.model_validate(c) for c in changes]
