"""Job request model for client hiring demands."""

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from api.models.base import BaseModel


class JobRequest(BaseModel):
    """
    A client's request to fill a number of positions.

    ``quantity`` is the number of hires wanted; the pipeline steps every
    application goes through come from ``process_template``.
    """

    __tablename__ = "job_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)

    process_template_id = Column(
        Integer,
        ForeignKey("process_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Owning recruiter (token subject)
    recruiter_id = Column(String(100), nullable=True)

    # Relationships
    process_template = relationship("ProcessTemplate", back_populates="job_requests")
    applications = relationship("Application", back_populates="job_request")

    def __repr__(self) -> str:
        return f"<JobRequest(id={self.id}, title={self.title}, quantity={self.quantity})>"
