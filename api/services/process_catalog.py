"""Read-only access to process templates and their ordered steps."""

from typing import Optional

from sqlalchemy.orm import Session

from api.middleware.error_handler import NotFoundError
from api.models import Application, JobRequest, ProcessStep, ProcessTemplate


class ProcessCatalog:
    """Lists the ordered steps an application has to go through."""

    def __init__(self, db: Session):
        self.db = db

    def list_steps(self, template_id: int) -> list[ProcessStep]:
        """Steps of a template ordered by ``step_order``."""
        return (
            self.db.query(ProcessStep)
            .filter(ProcessStep.template_id == template_id)
            .order_by(ProcessStep.step_order)
            .all()
        )

    def get_template(self, template_id: int) -> ProcessTemplate:
        template = self.db.query(ProcessTemplate).filter(ProcessTemplate.id == template_id).first()
        if not template:
            raise NotFoundError("ProcessTemplate", template_id)
        return template

    def get_step(self, step_id: int) -> ProcessStep:
        step = self.db.query(ProcessStep).filter(ProcessStep.id == step_id).first()
        if not step:
            raise NotFoundError("ProcessStep", step_id)
        return step

    def steps_for_application(self, application: Application) -> list[ProcessStep]:
        """Steps of the template configured on the application's job request.

        A job request without a template yields no steps.
        """
        job_request = self.db.query(JobRequest).filter(JobRequest.id == application.job_request_id).first()
        if not job_request or not job_request.process_template_id:
            return []
        return self.list_steps(job_request.process_template_id)


def previous_step(steps: list[ProcessStep], step: ProcessStep) -> Optional[ProcessStep]:
    """The step immediately before ``step`` in an ordered step list."""
    index = _index_of(steps, step)
    return steps[index - 1] if index > 0 else None


def is_first_step(steps: list[ProcessStep], step: ProcessStep) -> bool:
    """Whether ``step`` has the minimum ``step_order`` of the template."""
    return bool(steps) and steps[0].id == step.id


def _index_of(steps: list[ProcessStep], step: ProcessStep) -> int:
    for index, candidate in enumerate(steps):
        if candidate.id == step.id:
            return index
    return -1
