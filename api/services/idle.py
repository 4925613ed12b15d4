"""Idle detection for applications that have not moved in a while."""

from datetime import datetime
from typing import Iterable, Optional

from api.config.settings import settings
from api.models import Activity, Application
from api.utils.time import utc_now


def last_update_time(application: Application, activities: Iterable[Activity]) -> datetime:
    """When the application last showed any sign of progress.

    The application's ``updated_at`` if set, else the latest scheduled date
    among its activities, else its ``created_at``.
    """
    if application.updated_at:
        return application.updated_at
    scheduled = [a.scheduled_date for a in activities if a.scheduled_date]
    if scheduled:
        return max(scheduled)
    return application.created_at


def days_since_last_update(
    application: Application,
    activities: Iterable[Activity],
    now: Optional[datetime] = None,
) -> int:
    """Whole days elapsed since ``last_update_time``, rounded down."""
    now = now or utc_now()
    return (now - last_update_time(application, activities)).days


def is_idle(
    application: Application,
    activities: Iterable[Activity],
    threshold_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    if threshold_days is None:
        threshold_days = settings.IDLE_THRESHOLD_DAYS
    return days_since_last_update(application, activities, now) >= threshold_days
