"""Persistence access for activities, scoped to one application at a time."""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.orm import Query, Session

from api.middleware.error_handler import NotFoundError
from api.models import Activity, ActivityStatus, ActivityType, Application


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit on success, roll back and re-raise on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


@dataclass
class ActivityFilter:
    """Filters accepted by the activity listing."""

    application_id: Optional[int] = None
    process_step_id: Optional[int] = None
    activity_type: Optional[ActivityType] = None
    status: Optional[ActivityStatus] = None
    scheduled_from: Optional[datetime] = None
    scheduled_to: Optional[datetime] = None


class ActivityStore:
    """
    Reads and writes activity rows.

    Every write path starts with ``lock_application`` so that the sibling
    activities it validates against cannot change underneath it before
    the transaction commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def lock_application(self, application_id: int) -> Application:
        """Lock the application row for the rest of the transaction.

        SQL Server ignores FOR UPDATE, so the lock is taken there through an
        UPDLOCK table hint instead.
        """
        application = (
            self.lock_query(application_id)
            .populate_existing()
            .first()
        )
        if not application:
            raise NotFoundError("Application", application_id)
        return application

    def lock_query(self, application_id: int) -> Query:
        return (
            self.db.query(Application)
            .with_hint(Application, "WITH (UPDLOCK, ROWLOCK)", "mssql")
            .filter(Application.id == application_id)
            .with_for_update()
        )

    def get(self, activity_id: int) -> Activity:
        activity = self.db.query(Activity).filter(Activity.id == activity_id).first()
        if not activity:
            raise NotFoundError("Activity", activity_id)
        return activity

    def list_for_application(self, application_id: int) -> list[Activity]:
        return (
            self.db.query(Activity)
            .filter(Activity.application_id == application_id)
            .populate_existing()
            .order_by(Activity.id)
            .all()
        )

    def by_step(self, application_id: int) -> dict[int, Activity]:
        """Activities of an application keyed by process step id."""
        return {a.process_step_id: a for a in self.list_for_application(application_id)}

    def list_sibling_schedules(self, application_id: int) -> dict[int, datetime]:
        """Scheduled dates of an application's activities keyed by step id.

        Always read fresh from the current transaction.
        """
        rows = (
            self.db.query(Activity.process_step_id, Activity.scheduled_date)
            .filter(
                Activity.application_id == application_id,
                Activity.scheduled_date.isnot(None),
            )
            .all()
        )
        return {step_id: scheduled for step_id, scheduled in rows}

    def add(self, activity: Activity) -> Activity:
        self.db.add(activity)
        self.db.flush()
        return activity

    def delete(self, activity: Activity) -> None:
        self.db.delete(activity)
        self.db.flush()

    def delete_all(self, activities: list[Activity]) -> int:
        for activity in activities:
            self.db.delete(activity)
        self.db.flush()
        return len(activities)

    def search(self, filters: ActivityFilter) -> Query:
        """Build a filtered activity query; the caller paginates."""
        query = self.db.query(Activity)
        if filters.application_id:
            query = query.filter(Activity.application_id == filters.application_id)
        if filters.process_step_id:
            query = query.filter(Activity.process_step_id == filters.process_step_id)
        if filters.activity_type is not None:
            query = query.filter(Activity.activity_type == filters.activity_type)
        if filters.status is not None:
            query = query.filter(Activity.status == filters.status)
        if filters.scheduled_from:
            query = query.filter(Activity.scheduled_date >= filters.scheduled_from)
        if filters.scheduled_to:
            query = query.filter(Activity.scheduled_date <= filters.scheduled_to)
        return query
