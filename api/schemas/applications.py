"""Pydantic schemas for application endpoints."""

from typing import Optional

from pydantic import Field

from api.models import ActivityStatus, ApplicationStatus
from .activities import ActivityResponse
from .base import CamelModel, UtcDateTime
from .process_templates import ProcessStepResponse


class ApplicationResponse(CamelModel):
    """Schema for an application and its pipeline progress."""

    id: int
    job_request_id: int
    cv_id: int
    recruiter_id: Optional[str] = None
    status: ApplicationStatus
    note: Optional[str] = None
    activity_count: int = 0
    passed_count: int = 0
    step_count: int = 0
    created_at: UtcDateTime
    updated_at: Optional[UtcDateTime] = None


class ApplicationActionRequest(CamelModel):
    """Optional comment recorded with a withdraw or reject."""

    comment: Optional[str] = Field(None, max_length=2000)


class ActivityChangeItem(CamelModel):
    activity_id: int
    from_status: ActivityStatus
    to_status: ActivityStatus


class WithdrawResponse(CamelModel):
    """Withdrawn application and the activities closed by the cascade."""

    application: ApplicationResponse
    from_status: ApplicationStatus
    changes: list[ActivityChangeItem] = []


class StatusChangeItem(CamelModel):
    """One entry of an application's status history."""

    id: int
    from_status: str
    to_status: str
    trigger: str
    comment: Optional[str] = None
    user_id: Optional[str] = None
    created_at: UtcDateTime


class IdleResponse(CamelModel):
    application_id: int
    last_update: UtcDateTime
    days_since_last_update: int
    threshold_days: int
    is_idle: bool


class AutoCreateResponse(CamelModel):
    """Activities created by auto-provisioning.

    ``stopped_at_step`` is the first step that could not be created; later
    steps were not attempted.
    """

    created: list[ActivityResponse] = []
    stopped_at_step: Optional[ProcessStepResponse] = None
    stop_reason: Optional[str] = None
    application_advanced_to: Optional[ApplicationStatus] = None
