"""ApplicationStatusChange model for the audit trail of application status changes."""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from api.config.database import Base
from api.utils.time import utc_now


# What caused a status change
TRIGGER_FIRST_ACTIVITY = "first_activity_created"
TRIGGER_ACTIVITY_COMPLETED = "activity_completed"
TRIGGER_ALL_STEPS_PASSED = "all_steps_passed"
TRIGGER_WITHDRAW = "withdraw"
TRIGGER_REJECT = "reject"

VALID_TRIGGERS = {
    TRIGGER_FIRST_ACTIVITY,
    TRIGGER_ACTIVITY_COMPLETED,
    TRIGGER_ALL_STEPS_PASSED,
    TRIGGER_WITHDRAW,
    TRIGGER_REJECT,
}


class ApplicationStatusChange(Base):
    """
    Audit trail for application status changes.

    Every change, whether cascaded from an activity or requested by a
    recruiter, is logged with what triggered it and who made it.
    """

    __tablename__ = "application_status_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    from_status = Column(String(30), nullable=False)
    to_status = Column(String(30), nullable=False)
    trigger = Column(String(50), nullable=False)
    comment = Column(Text, nullable=True)

    # Who made the change (None = cascade without an acting user)
    user_id = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_application_status_changes_application", "application_id"),
        Index("ix_application_status_changes_created", "created_at"),
    )

    # Relationships
    application = relationship("Application", back_populates="status_changes")

    def __repr__(self) -> str:
        return (
            f"<ApplicationStatusChange(id={self.id}, {self.from_status}->{self.to_status}, "
            f"trigger={self.trigger})>"
        )
