"""API endpoints for the Hiring Pipeline API."""

from fastapi import APIRouter

from .health import router as health_router
from .activities import router as activities_router
from .applications import router as applications_router
from .job_requests import router as job_requests_router
from .process_templates import router as process_templates_router

# Create main API router
api_router = APIRouter()

# Include all routers
api_router.include_router(health_router, prefix="/health", tags=["Health"])
api_router.include_router(activities_router, prefix="/activities", tags=["Activities"])
api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])
api_router.include_router(job_requests_router, prefix="/job-requests", tags=["Job Requests"])
api_router.include_router(process_templates_router, prefix="/process-templates", tags=["Process Templates"])

__all__ = ["api_router"]
