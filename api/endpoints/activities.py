"""Activity endpoints: creation, status transitions, scheduling and deletion."""

from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import case
from sqlalchemy.orm import Session

from api.config.database import get_db
from api.middleware.error_handler import NotFoundError
from api.models import Activity, ActivityStatus, ActivityType, Application
from api.schemas.activities import (
    ActivityCreate,
    ActivityCreateResponse,
    ActivityResponse,
    ActivityScheduleResponse,
    ActivityScheduleUpdate,
    ActivityStatusUpdate,
    ActivityTransitionResponse,
    SuggestedScheduleResponse,
)
from api.schemas.base import PaginatedResponse, PaginationMeta
from api.services.activity_state_machine import ActivityStateMachine, allowed_transitions
from api.services.activity_store import ActivityFilter, ActivityStore
from api.services.rbac import ensure_can_mutate, require_role
from api.utils.time import to_utc

logger = structlog.get_logger()
router = APIRouter()


def build_activity_response(activity: Activity, application: Optional[Application] = None) -> ActivityResponse:
    """Activity with its step name/order and the transitions open to it."""
    application = application or activity.application
    step = activity.process_step
    return ActivityResponse(
        id=activity.id,
        application_id=activity.application_id,
        process_step_id=activity.process_step_id,
        step_order=step.step_order if step else None,
        step_name=step.step_name if step else None,
        activity_type=activity.activity_type,
        status=activity.status,
        scheduled_date=activity.scheduled_date,
        notes=activity.notes,
        allowed_transitions=allowed_transitions(activity, application),
        created_at=activity.created_at,
        updated_at=activity.updated_at,
    )


def get_application_for_mutation(db: Session, application_id: int, user: dict) -> Application:
    """Load an application and check the caller may change its pipeline."""
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise NotFoundError("Application", application_id)
    ensure_can_mutate(application, user)
    return application


def get_activity_for_mutation(db: Session, activity_id: int, user: dict) -> Activity:
    activity = ActivityStore(db).get(activity_id)
    get_application_for_mutation(db, activity.application_id, user)
    return activity


@router.get("", response_model=PaginatedResponse[ActivityResponse])
def list_activities(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    application_id: Optional[int] = Query(None),
    process_step_id: Optional[int] = Query(None),
    activity_type: Optional[ActivityType] = Query(None),
    status: Optional[ActivityStatus] = Query(None),
    scheduled_from: Optional[datetime] = Query(None),
    scheduled_to: Optional[datetime] = Query(None),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """List activities with filters, ordered by schedule."""
    query = ActivityStore(db).search(ActivityFilter(
        application_id=application_id,
        process_step_id=process_step_id,
        activity_type=activity_type,
        status=status,
        scheduled_from=to_utc(scheduled_from),
        scheduled_to=to_utc(scheduled_to),
    ))

    total = query.count()
    activities = (
        query.order_by(case((Activity.scheduled_date.is_(None), 1), else_=0), Activity.scheduled_date, Activity.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return PaginatedResponse(
        data=[build_activity_response(a) for a in activities],
        meta=PaginationMeta(
            page=page,
            per_page=per_page,
            total=total,
            total_pages=(total + per_page - 1) // per_page,
        ),
    )


@router.post("", response_model=ActivityCreateResponse, status_code=201)
def create_activity(
    data: ActivityCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Create the activity of one process step for an application."""
    get_application_for_mutation(db, data.application_id, user)

    result = ActivityStateMachine(db).create_activity(
        data.application_id,
        data.process_step_id,
        activity_type=data.activity_type,
        scheduled_date=data.scheduled_date,
        notes=data.notes,
        user_id=user.get("sub"),
    )
    return ActivityCreateResponse(
        activity=build_activity_response(result.activity),
        application_advanced_to=result.application_advanced_to,
        warnings=result.warnings,
    )


@router.get("/{activity_id}", response_model=ActivityResponse)
def get_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    return build_activity_response(ActivityStore(db).get(activity_id))


@router.patch("/{activity_id}/status", response_model=ActivityTransitionResponse)
def update_activity_status(
    activity_id: int,
    data: ActivityStatusUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """
    Move an activity to its next status.

    Completing an activity moves a Submitted application to Interviewing;
    passing the last outstanding step hires it.
    """
    get_activity_for_mutation(db, activity_id, user)

    result = ActivityStateMachine(db).transition(
        activity_id,
        data.status,
        notes=data.notes,
        user_id=user.get("sub"),
    )
    return ActivityTransitionResponse(
        activity=build_activity_response(result.activity),
        from_status=result.from_status,
        to_status=result.to_status,
        application_advanced_to=result.application_advanced_to,
    )


@router.patch("/{activity_id}/schedule", response_model=ActivityScheduleResponse)
def update_activity_schedule(
    activity_id: int,
    data: ActivityScheduleUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Set the scheduled date. Dates without an offset are read in DEFAULT_TIMEZONE."""
    get_activity_for_mutation(db, activity_id, user)

    result = ActivityStateMachine(db).set_schedule(
        activity_id,
        data.scheduled_date,
        user_id=user.get("sub"),
    )
    return ActivityScheduleResponse(
        activity=build_activity_response(result.activity),
        warnings=result.warnings,
    )


@router.get("/{activity_id}/suggested-schedule", response_model=SuggestedScheduleResponse)
def get_suggested_schedule(
    activity_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    return SuggestedScheduleResponse(
        activity_id=activity_id,
        suggested_date=ActivityStateMachine(db).suggest_schedule(activity_id),
    )


@router.delete("/{activity_id}", status_code=204, response_class=Response)
def delete_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Delete an activity that is still Scheduled."""
    get_activity_for_mutation(db, activity_id, user)
    ActivityStateMachine(db).delete_activity(activity_id)
    return Response(status_code=204)
