"""
Hiring Pipeline API.

Run with: uvicorn api.main:app --reload
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config.settings import settings
from api.config.database import init_db
from api.endpoints import api_router
from api.middleware.auth import AuthMiddleware
from api.middleware.error_handler import setup_exception_handlers
from api.middleware.logging import LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Hiring pipeline starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        timezone=settings.DEFAULT_TIMEZONE,
        idle_threshold_days=settings.IDLE_THRESHOLD_DAYS,
        creation_requires_previous_passed=settings.ACTIVITY_CREATION_REQUIRES_PREVIOUS_PASSED,
    )

    # Alembic owns the schema outside DEBUG
    if settings.DEBUG:
        init_db()
        logger.info("Database tables created")

    yield

    logger.info("Hiring pipeline stopped")


def create_app() -> FastAPI:
    docs = settings.DEBUG
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Interview scheduling and hiring status pipeline for recruitment applications",
        docs_url="/api/docs" if docs else None,
        redoc_url="/api/redoc" if docs else None,
        openapi_url="/api/openapi.json" if docs else None,
        lifespan=lifespan,
    )
    setup_exception_handlers(application)

    # Last added runs first: logging wraps auth, auth wraps CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(AuthMiddleware)
    application.add_middleware(LoggingMiddleware)

    application.include_router(api_router, prefix="/api/v1")

    @application.get("/health")
    async def root_health():
        return {"status": "ok", "version": settings.APP_VERSION}

    @application.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/api/docs" if docs else None,
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
