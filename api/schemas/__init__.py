"""Pydantic schemas for API request/response validation.

All schemas use CamelCase for JSON field names (via alias_generator).
"""

from .base import CamelModel, PaginatedResponse, PaginationMeta, UtcDateTime

from .process_templates import ProcessStepResponse, ProcessTemplateStepsResponse
from .job_requests import RemainingSlotsResponse
from .activities import (
    ActivityCreate,
    ActivityStatusUpdate,
    ActivityScheduleUpdate,
    ActivityResponse,
    ActivityCreateResponse,
    ActivityTransitionResponse,
    ActivityScheduleResponse,
    SuggestedScheduleResponse,
    BulkDeleteResponse,
)
from .applications import (
    ApplicationResponse,
    ApplicationActionRequest,
    ActivityChangeItem,
    WithdrawResponse,
    StatusChangeItem,
    IdleResponse,
    AutoCreateResponse,
)

__all__ = [
    # Base
    "CamelModel",
    "PaginatedResponse",
    "PaginationMeta",
    "UtcDateTime",
    # Process templates
    "ProcessStepResponse",
    "ProcessTemplateStepsResponse",
    # Job requests
    "RemainingSlotsResponse",
    # Activities
    "ActivityCreate",
    "ActivityStatusUpdate",
    "ActivityScheduleUpdate",
    "ActivityResponse",
    "ActivityCreateResponse",
    "ActivityTransitionResponse",
    "ActivityScheduleResponse",
    "SuggestedScheduleResponse",
    "BulkDeleteResponse",
    # Applications
    "ApplicationResponse",
    "ApplicationActionRequest",
    "ActivityChangeItem",
    "WithdrawResponse",
    "StatusChangeItem",
    "IdleResponse",
    "AutoCreateResponse",
]
