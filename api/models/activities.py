"""Activity model: one application's instance of a process step."""

from enum import Enum

from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from api.models.base import BaseModel


class ActivityType(str, Enum):
    """How the activity takes place."""

    ONLINE = "Online"
    OFFLINE = "Offline"


class ActivityStatus(str, Enum):
    """Status of a single activity."""

    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    PASSED = "Passed"
    FAILED = "Failed"
    NO_SHOW = "NoShow"


# Allowed next statuses, keyed by current status.
# NoShow is only ever set by the withdrawal cascade.
ACTIVITY_TRANSITIONS: dict[ActivityStatus, frozenset[ActivityStatus]] = {
    ActivityStatus.SCHEDULED: frozenset({ActivityStatus.COMPLETED}),
    ActivityStatus.COMPLETED: frozenset({ActivityStatus.PASSED, ActivityStatus.FAILED}),
    ActivityStatus.PASSED: frozenset(),
    ActivityStatus.FAILED: frozenset(),
    ActivityStatus.NO_SHOW: frozenset(),
}

TERMINAL_ACTIVITY_STATUSES = frozenset({
    ActivityStatus.PASSED,
    ActivityStatus.FAILED,
    ActivityStatus.NO_SHOW,
})

# Statuses in which the schedule can no longer be edited
SCHEDULE_LOCKED_STATUSES = TERMINAL_ACTIVITY_STATUSES | {ActivityStatus.COMPLETED}


class Activity(BaseModel):
    """
    Scheduled or completed event for one step of an application's process.

    At most one activity exists per (application, process step).
    ``scheduled_date`` is a naive UTC instant.
    """

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    process_step_id = Column(
        Integer,
        ForeignKey("process_steps.id"),
        nullable=False,
    )

    activity_type = Column(
        SAEnum(
            ActivityType,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ActivityType.ONLINE,
    )
    status = Column(
        SAEnum(
            ActivityStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ActivityStatus.SCHEDULED,
    )
    scheduled_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("application_id", "process_step_id", name="uq_activities_application_step"),
        Index("ix_activities_application", "application_id"),
        Index("ix_activities_scheduled", "scheduled_date"),
    )

    # Relationships
    application = relationship("Application", back_populates="activities")
    process_step = relationship("ProcessStep")

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, step={self.process_step_id}, status={self.status})>"
