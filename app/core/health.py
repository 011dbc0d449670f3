"""Health check endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

# Tables holding cross-run learned state
LEARNING_TABLES = ("seasonal_event", "model_weights", "forecast_accuracy")


class HealthResponse(BaseModel):
    """Health check response schema.

    A missing learning table yields "degraded": forecasts still run,
    using default events and weights.
    """

    status: Literal["ok", "degraded", "unhealthy"]
    database: Literal["connected", "disconnected"] | None = None
    missing_tables: list[str] = []


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic liveness check."""
    logger.debug("health.check_started")
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Readiness check including database connectivity and learning tables.

    Args:
        db: Database session dependency.

    Returns:
        Health status with database state.
    """
    logger.debug("health.readiness_check_started")

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(
            "health.database_disconnected",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return HealthResponse(status="unhealthy", database="disconnected")

    missing: list[str] = []
    for table in LEARNING_TABLES:
        try:
            async with db.begin_nested():
                await db.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))  # noqa: S608
        except SQLAlchemyError:
            missing.append(table)

    if missing:
        logger.warning("health.learning_tables_missing", tables=missing)
        return HealthResponse(status="degraded", database="connected", missing_tables=missing)

    logger.info("health.database_connected")
    return HealthResponse(status="ok", database="connected")
