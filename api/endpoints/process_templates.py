"""Read-only process template endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.config.database import get_db
from api.schemas.process_templates import ProcessStepResponse, ProcessTemplateStepsResponse
from api.services.process_catalog import ProcessCatalog
from api.services.rbac import require_role

router = APIRouter()


@router.get("/{template_id}/steps", response_model=ProcessTemplateStepsResponse)
def get_template_steps(
    template_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """Steps of a hiring process in order."""
    catalog = ProcessCatalog(db)
    template = catalog.get_template(template_id)
    return ProcessTemplateStepsResponse(
        template_id=template.id,
        name=template.name,
        description=template.description,
        steps=[ProcessStepResponse.model_validate(s) for s in catalog.list_steps(template_id)],
    )
