"""Health, readiness and liveness checks for the workflow service."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow import __version__
from hr_workflow.api.dependencies import DbSession
from hr_workflow.models import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status with the state of the backing store."""

    status: str
    version: str
    timestamp: datetime
    database: str
    schema_ready: bool


async def _check_store(db: AsyncSession) -> tuple[str, bool]:
    """Return (database status, whether the workflow tables answer queries)."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return "unhealthy", False
    try:
        await db.scalar(select(func.count()).select_from(User))
    except SQLAlchemyError:
        logger.warning("Workflow schema is not available", exc_info=True)
        return "healthy", False
    return "healthy", True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    database, schema_ready = await _check_store(db)
    return HealthResponse(
        status="healthy" if schema_ready else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=database,
        schema_ready=schema_ready,
    )


@router.get("/ready")
async def readiness_check(db: DbSession) -> JSONResponse:
    """Ready once the store is reachable and the schema exists."""
    _, schema_ready = await _check_store(db)
    if not schema_ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"status": "not ready"}
        )
    return JSONResponse(content={"status": "ready"})


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
