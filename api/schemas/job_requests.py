"""Pydantic schemas for job request endpoints."""

from .base import CamelModel


class RemainingSlotsResponse(CamelModel):
    """Advisory capacity of a job request.

    ``counted`` covers applications that are Submitted, Interviewing or Hired.
    """

    job_request_id: int
    quantity: int
    counted: int
    remaining: int
