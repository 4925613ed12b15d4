"""Request logging middleware using structlog."""

import logging
import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from api.config.settings import settings

logger = structlog.get_logger()


def configure_logging(level: str = None) -> None:
    """Configure structlog for JSON logging at ``LOG_LEVEL``."""
    level_name = (level or settings.LOG_LEVEL).upper()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


QUIET_PATHS = ("/health", "/api/v1/health")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id and logs every request with its outcome.

    Health probes are logged at debug level only.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        quiet = request.url.path.startswith(QUIET_PATHS)
        start_time = time.perf_counter()
        (logger.debug if quiet else logger.info)(
            "Request started",
            method=request.method,
            path=request.url.path,
            query=str(request.query_params),
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        if response.status_code >= 400:
            log_method = logger.warning
        else:
            log_method = logger.debug if quiet else logger.info
        log_method(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response
