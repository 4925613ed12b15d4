"""Job request endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.config.database import get_db
from api.schemas.job_requests import RemainingSlotsResponse
from api.services.capacity import capacity_summary
from api.services.rbac import require_role

router = APIRouter()


@router.get("/{job_request_id}/remaining-slots", response_model=RemainingSlotsResponse)
def get_remaining_slots(
    job_request_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(require_role(["admin", "recruiter"])),
):
    """
    Open hiring slots on a job request.

    Computed without locking; treat it as advisory when applications are
    changing concurrently.
    """
    summary = capacity_summary(db, job_request_id)
    return RemainingSlotsResponse(
        job_request_id=summary.job_request_id,
        quantity=summary.quantity,
        counted=summary.counted,
        remaining=summary.remaining,
    )
