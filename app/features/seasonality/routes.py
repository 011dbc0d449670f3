"""Seasonality API routes for detection, learning and the event catalog."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import DatabaseError
from app.core.logging import get_logger
from app.features.seasonality.schemas import (
    DetectedPattern,
    DetectedSeasonality,
    LearnResponse,
    PatternDetectRequest,
    SalesHistoryRequest,
    SeasonalEvent,
    SeasonalEventCreate,
    SeedResponse,
    SkuMultiplierUpdate,
)
from app.features.seasonality.service import SeasonalityService

logger = get_logger(__name__)

router = APIRouter(prefix="/seasonality", tags=["seasonality"])


def _database_error(action: str, e: SQLAlchemyError) -> DatabaseError:
    logger.error(
        "seasonality.request_failed",
        action=action,
        error=str(e),
        error_type=type(e).__name__,
        exc_info=True,
    )
    return DatabaseError(message=f"Failed to {action}", details={"error": str(e)})


# =============================================================================
# Detection & Learning
# =============================================================================


@router.post(
    "/detect",
    response_model=DetectedSeasonality,
    summary="Detect seasonality for a SKU",
    description="""
Compute monthly and weekday multipliers from the SKU's sales history and list
active events starting within the lookahead horizon.

Yearly patterns need at least 365 days of history. Weekly patterns and the
event lookup always run. If the event table is unavailable the default
catalog is used.
""",
)
async def detect(
    request: SalesHistoryRequest,
    db: AsyncSession = Depends(get_db),
) -> DetectedSeasonality:
    """Detect seasonality for a SKU."""
    logger.info("seasonality.detect_request_received", sku=request.sku, n_points=len(request.sales))
    return await SeasonalityService().detect(db, request)


@router.post(
    "/learn",
    response_model=LearnResponse,
    summary="Learn event multipliers from history",
    description="""
Learn a multiplier for every active event from multi-year history and store
it on the event. With `per_sku=true` (default) the value is stored as that
SKU's override; otherwise it becomes the global learned multiplier.

Requires at least 365 days of history; shorter histories are a no-op.
""",
)
async def learn(
    request: SalesHistoryRequest,
    per_sku: bool = Query(True, description="Store as SKU override"),
    db: AsyncSession = Depends(get_db),
) -> LearnResponse:
    """Learn and persist event multipliers."""
    logger.info("seasonality.learn_request_received", sku=request.sku, per_sku=per_sku)
    return await SeasonalityService().learn(db, request, per_sku=per_sku)


@router.post(
    "/patterns",
    response_model=list[DetectedPattern],
    summary="Find undeclared recurring spikes",
    description="Advisory scan of two or more years of history. Never creates events.",
)
async def detect_patterns(request: PatternDetectRequest) -> list[DetectedPattern]:
    """Find undeclared recurring spikes."""
    logger.info("seasonality.patterns_request_received", n_points=len(request.sales))
    return SeasonalityService().detect_patterns(request)


# =============================================================================
# Event Catalog
# =============================================================================


@router.get(
    "/events",
    response_model=list[SeasonalEvent],
    summary="List seasonal events",
)
async def list_events(
    active_only: bool = Query(True, description="Only return active events"),
    db: AsyncSession = Depends(get_db),
) -> list[SeasonalEvent]:
    """List seasonal events."""
    try:
        return await SeasonalityService().list_events(db, active_only=active_only)
    except SQLAlchemyError as e:
        raise _database_error("list seasonal events", e) from e


@router.post(
    "/events",
    response_model=SeasonalEvent,
    status_code=status.HTTP_201_CREATED,
    summary="Create a seasonal event",
)
async def create_event(
    payload: SeasonalEventCreate,
    db: AsyncSession = Depends(get_db),
) -> SeasonalEvent:
    """Create a seasonal event."""
    logger.info("seasonality.create_event_request_received", name=payload.name)
    try:
        return await SeasonalityService().create_event(db, payload)
    except SQLAlchemyError as e:
        raise _database_error("create seasonal event", e) from e


@router.put(
    "/events/{event_id}/sku-multiplier",
    response_model=SeasonalEvent,
    summary="Set a per-SKU multiplier override",
)
async def set_sku_multiplier(
    event_id: int,
    update: SkuMultiplierUpdate,
    db: AsyncSession = Depends(get_db),
) -> SeasonalEvent:
    """Set a per-SKU multiplier override."""
    try:
        return await SeasonalityService().set_sku_multiplier(db, event_id, update)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except SQLAlchemyError as e:
        raise _database_error("update SKU multiplier", e) from e


@router.post(
    "/events/{event_id}/deactivate",
    response_model=SeasonalEvent,
    summary="Deactivate a seasonal event",
)
async def deactivate_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
) -> SeasonalEvent:
    """Deactivate a seasonal event."""
    try:
        return await SeasonalityService().deactivate_event(db, event_id)
    except SQLAlchemyError as e:
        raise _database_error("deactivate seasonal event", e) from e


@router.post(
    "/events/seed",
    response_model=SeedResponse,
    summary="Seed the default event catalog",
    description="Upsert the six default events by name. Learned multipliers are kept.",
)
async def seed_events(db: AsyncSession = Depends(get_db)) -> SeedResponse:
    """Seed the default event catalog."""
    try:
        return await SeasonalityService().seed_defaults(db)
    except SQLAlchemyError as e:
        raise _database_error("seed seasonal events", e) from e
