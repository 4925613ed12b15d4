"""Pydantic schemas for process template endpoints."""

from typing import Optional

from .base import CamelModel


class ProcessStepResponse(CamelModel):
    """One ordered step of a hiring process."""

    id: int
    template_id: int
    step_order: int
    step_name: str
    description: Optional[str] = None


class ProcessTemplateStepsResponse(CamelModel):
    template_id: int
    name: str
    description: Optional[str] = None
    steps: list[ProcessStepResponse]
