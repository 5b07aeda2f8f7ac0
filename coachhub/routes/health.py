# coachhub/routes/health.py
"""Liveness endpoint used by load balancers and uptime checks."""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..api.dependencies.database import get_db
from ..core.constants import API_TITLE, API_VERSION

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    version: str
    timestamp: datetime
    checks: dict


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Report service status and database connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = True
        status = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = False
        status = "degraded"

    return HealthCheckResponse(
        status=status,
        service=API_TITLE,
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc),
        checks={"database": db_status},
    )
