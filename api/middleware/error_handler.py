"""Global exception handlers and caller-facing error types for the API."""

from datetime import datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        code: str = "API_ERROR",
        status_code: int = 400,
        details: dict = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str | int):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "id": identifier},
        )


class ForbiddenError(APIError):
    """Access forbidden."""

    def __init__(self, message: str = "You don't have permission to access this resource"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


# Pipeline errors. Each carries the step, status or conflicting date the
# caller needs to render an actionable message.


def _format_instant(value: datetime | None) -> str | None:
    return value.isoformat() + "Z" if value else None


class ActivityValidationError(APIError):
    """A required field is missing or invalid (e.g. no schedule before a status change)."""

    def __init__(self, message: str, field: str = None, **details):
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=422,
            details=details,
        )


class OrderingError(APIError):
    """A schedule violates the order of a sibling step."""

    def __init__(
        self,
        message: str,
        step_name: str,
        step_order: int | None,
        conflicting_date: datetime | None,
    ):
        self.step_name = step_name
        self.step_order = step_order
        self.conflicting_date = conflicting_date
        super().__init__(
            message=message,
            code="ORDERING_ERROR",
            status_code=409,
            details={
                "stepName": step_name,
                "stepOrder": step_order,
                "conflictingDate": _format_instant(conflicting_date),
            },
        )


class PrecedingStepMissingError(APIError):
    """The immediately preceding step has no activity yet."""

    def __init__(self, step_name: str, step_order: int):
        self.step_name = step_name
        self.step_order = step_order
        super().__init__(
            message=f"Step {step_order}. {step_name} has no activity yet",
            code="PRECEDING_STEP_MISSING",
            status_code=409,
            details={"stepName": step_name, "stepOrder": step_order},
        )


class TransitionNotAllowedError(APIError):
    """A status change or edit is not allowed from the current state."""

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        requested_status: str | None = None,
        allowed: list[str] | None = None,
        reason: str | None = None,
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        self.reason = reason
        super().__init__(
            message=message,
            code="TRANSITION_NOT_ALLOWED",
            status_code=409,
            details={
                "currentStatus": current_status,
                "requestedStatus": requested_status,
                "allowed": allowed or [],
                "reason": reason,
            },
        )


class HasProgressError(APIError):
    """Deletion attempted on activities that have already left Scheduled."""

    def __init__(self, activity_ids: list[int]):
        self.activity_ids = activity_ids
        super().__init__(
            message="Activities that have left Scheduled cannot be deleted",
            code="HAS_PROGRESS",
            status_code=409,
            details={"activityIds": activity_ids},
        )


class DuplicateStepError(APIError):
    """The application already has an activity for this step."""

    def __init__(self, step_name: str, activity_id: int):
        self.step_name = step_name
        self.activity_id = activity_id
        super().__init__(
            message=f"An activity already exists for step '{step_name}'",
            code="DUPLICATE_STEP",
            status_code=409,
            details={"stepName": step_name, "activityId": activity_id},
        )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        """Handle custom API errors."""
        logger.warning(
            "API error",
            code=exc.code,
            message=exc.message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle Pydantic validation errors."""
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        message = first_error.get("msg", "Validation error")

        logger.warning(
            "Validation error",
            field=field,
            message=message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": message,
                    "details": {"field": field},
                }
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Handle database errors."""
        logger.error(
            "Database error",
            error=str(exc),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "DATABASE_ERROR",
                    "message": "A database error occurred",
                    "details": {},
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "Unexpected error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": {},
                }
            },
        )
