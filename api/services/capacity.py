"""Remaining hiring slots of a job request."""

from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from api.middleware.error_handler import NotFoundError
from api.models import Application, JobRequest, CAPACITY_STATUSES


@dataclass
class CapacitySummary:
    job_request_id: int
    quantity: int
    counted: int
    remaining: int


def count_active_applications(db: Session, job_request_id: int) -> int:
    """Applications that hold a slot: Submitted, Interviewing or Hired."""
    return (
        db.query(func.count(Application.id))
        .filter(
            Application.job_request_id == job_request_id,
            Application.status.in_(list(CAPACITY_STATUSES)),
        )
        .scalar()
    ) or 0


def capacity_summary(db: Session, job_request_id: int) -> CapacitySummary:
    job_request = db.query(JobRequest).filter(JobRequest.id == job_request_id).first()
    if not job_request:
        raise NotFoundError("JobRequest", job_request_id)

    quantity = job_request.quantity or 0
    counted = count_active_applications(db, job_request_id)
    return CapacitySummary(
        job_request_id=job_request_id,
        quantity=quantity,
        counted=counted,
        remaining=max(quantity - counted, 0),
    )


def remaining_slots(db: Session, job_request_id: int) -> int:
    """Open slots left on a job request, never negative.

    Read without locking, so the number is advisory: two concurrent
    submissions can both see the last slot.
    """
    return capacity_summary(db, job_request_id).remaining
