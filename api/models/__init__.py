"""SQLAlchemy ORM models for the Hiring Pipeline API.

All models are imported here to ensure they're registered with Base.metadata
before any database operations.
"""

# Import base first
from api.config.database import Base

# Process catalog
from .process_templates import ProcessTemplate, ProcessStep

# Core models
from .job_requests import JobRequest
from .applications import (
    Application,
    ApplicationStatus,
    APPLICATION_TRANSITIONS,
    ACTIVITY_CREATION_STATUSES,
    CAPACITY_STATUSES,
)
from .activities import (
    Activity,
    ActivityStatus,
    ActivityType,
    ACTIVITY_TRANSITIONS,
    TERMINAL_ACTIVITY_STATUSES,
    SCHEDULE_LOCKED_STATUSES,
)

# Audit models
from .application_status_changes import ApplicationStatusChange

__all__ = [
    "Base",
    # Process catalog
    "ProcessTemplate",
    "ProcessStep",
    # Core
    "JobRequest",
    "Application",
    "ApplicationStatus",
    "APPLICATION_TRANSITIONS",
    "ACTIVITY_CREATION_STATUSES",
    "CAPACITY_STATUSES",
    "Activity",
    "ActivityStatus",
    "ActivityType",
    "ACTIVITY_TRANSITIONS",
    "TERMINAL_ACTIVITY_STATUSES",
    "SCHEDULE_LOCKED_STATUSES",
    # Audit
    "ApplicationStatusChange",
]
