"""Pydantic schemas for activity endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from api.models import ActivityStatus, ActivityType, ApplicationStatus
from .base import CamelModel, UtcDateTime


class ActivityCreate(CamelModel):
    """Schema for creating the activity of one process step."""

    application_id: int
    process_step_id: int
    activity_type: ActivityType = ActivityType.ONLINE
    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=4000)


class ActivityStatusUpdate(CamelModel):
    """Schema for a status transition. ``notes`` is required for Failed."""

    status: ActivityStatus
    notes: Optional[str] = Field(None, max_length=4000)


class ActivityScheduleUpdate(CamelModel):
    scheduled_date: datetime


class ActivityResponse(CamelModel):
    """Schema for an activity with its step."""

    id: int
    application_id: int
    process_step_id: int
    step_order: Optional[int] = None
    step_name: Optional[str] = None
    activity_type: ActivityType
    status: ActivityStatus
    scheduled_date: Optional[UtcDateTime] = None
    notes: Optional[str] = None
    allowed_transitions: list[ActivityStatus] = []
    created_at: UtcDateTime
    updated_at: Optional[UtcDateTime] = None

    @field_validator("allowed_transitions", mode="before")
    @classmethod
    def sort_transitions(cls, v):
        return sorted(v or [], key=lambda s: list(ActivityStatus).index(ActivityStatus(s)))


class ActivityCreateResponse(CamelModel):
    activity: ActivityResponse
    application_advanced_to: Optional[ApplicationStatus] = None
    warnings: list[str] = []


class ActivityTransitionResponse(CamelModel):
    """Result of a status change, including the application cascade."""

    activity: ActivityResponse
    from_status: ActivityStatus
    to_status: ActivityStatus
    application_advanced_to: Optional[ApplicationStatus] = None


class ActivityScheduleResponse(CamelModel):
    activity: ActivityResponse
    warnings: list[str] = []


class SuggestedScheduleResponse(CamelModel):
    """Default offered when editing a schedule; never binding."""

    activity_id: int
    suggested_date: Optional[UtcDateTime] = None


class BulkDeleteResponse(CamelModel):
    application_id: int
    deleted: int
