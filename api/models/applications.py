"""Application model for candidate applications."""

from enum import Enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from api.models.base import BaseModel


class ApplicationStatus(str, Enum):
    """Lifecycle status of an application."""

    SUBMITTED = "Submitted"
    INTERVIEWING = "Interviewing"
    HIRED = "Hired"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"
    EXPIRED = "Expired"
    CLOSED_BY_SYSTEM = "ClosedBySystem"


# Application-level transitions applied by the command service
APPLICATION_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.SUBMITTED: frozenset({
        ApplicationStatus.INTERVIEWING,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
        ApplicationStatus.EXPIRED,
        ApplicationStatus.CLOSED_BY_SYSTEM,
    }),
    ApplicationStatus.INTERVIEWING: frozenset({
        ApplicationStatus.HIRED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.WITHDRAWN,
        ApplicationStatus.EXPIRED,
        ApplicationStatus.CLOSED_BY_SYSTEM,
    }),
    ApplicationStatus.HIRED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.WITHDRAWN: frozenset(),
    ApplicationStatus.EXPIRED: frozenset(),
    ApplicationStatus.CLOSED_BY_SYSTEM: frozenset(),
}

# Statuses in which activities may be created
ACTIVITY_CREATION_STATUSES = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.INTERVIEWING,
})

# Statuses that consume a hiring slot on the job request
CAPACITY_STATUSES = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.INTERVIEWING,
    ApplicationStatus.HIRED,
})


class Application(BaseModel):
    """
    Candidate application to a job request.

    Status is changed only by the application status aggregator or by an
    explicit recruiter action (withdraw/reject).
    """

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_request_id = Column(Integer, ForeignKey("job_requests.id"), nullable=False)
    cv_id = Column(Integer, nullable=False)

    # Assigned recruiter (token subject); only they may mutate the pipeline
    recruiter_id = Column(String(100), nullable=True)

    status = Column(
        SAEnum(
            ApplicationStatus,
            native_enum=False,
            length=30,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ApplicationStatus.SUBMITTED,
    )
    note = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_applications_job_request_status", "job_request_id", "status"),
    )

    # Relationships
    job_request = relationship("JobRequest", back_populates="applications")
    activities = relationship(
        "Activity",
        back_populates="application",
        cascade="all, delete-orphan",
    )
    status_changes = relationship(
        "ApplicationStatusChange",
        back_populates="application",
        order_by="ApplicationStatusChange.id.desc()",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, cv={self.cv_id}, status={self.status})>"
