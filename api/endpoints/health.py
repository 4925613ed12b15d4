"""Health check endpoints for monitoring."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from api.config.settings import settings
from api.config.database import get_db

logger = structlog.get_logger()
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    database: str


def check_database(db: Session) -> tuple[str, str | None]:
    """Check database connectivity."""
    try:
        db.execute(text("SELECT 1")).fetchone()
        return "connected", None
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return "disconnected", str(e)


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """Overall status with database connectivity."""
    db_status, _ = check_database(db)
    return HealthResponse(
        status="healthy" if db_status == "connected" else "unhealthy",
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=db_status,
    )


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)) -> dict:
    """Readiness probe: 200 with ``ready`` false while the database is down."""
    db_status, _ = check_database(db)
    if db_status != "connected":
        return {"ready": False, "reason": "Database not connected"}
    return {"ready": True}


@router.get("/live")
def liveness_check() -> dict:
    return {"alive": True}
