"""Process template and step models for hiring pipelines."""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from api.models.base import BaseModel


class ProcessTemplate(BaseModel):
    """
    Ordered hiring pipeline defined by a client.

    Templates are read-only from the pipeline's point of view while
    applications reference them.
    """

    __tablename__ = "process_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Relationships
    steps = relationship(
        "ProcessStep",
        back_populates="template",
        order_by="ProcessStep.step_order",
    )
    job_requests = relationship("JobRequest", back_populates="process_template")

    def __repr__(self) -> str:
        return f"<ProcessTemplate(id={self.id}, name={self.name})>"


class ProcessStep(BaseModel):
    """One ordered step of a process template (screening, interview, offer...)."""

    __tablename__ = "process_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(
        Integer,
        ForeignKey("process_templates.id", ondelete="CASCADE"),
        nullable=False,
    )
    step_order = Column(Integer, nullable=False)  # >= 1, unique per template
    step_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("template_id", "step_order", name="uq_process_steps_template_order"),
        Index("ix_process_steps_template", "template_id"),
    )

    # Relationships
    template = relationship("ProcessTemplate", back_populates="steps")

    def __repr__(self) -> str:
        return f"<ProcessStep(id={self.id}, order={self.step_order}, name={self.step_name})>"
