"""New-item forecasting API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_forecast_config
from app.core.database import get_db
from app.core.logging import get_logger, sku_context
from app.features.new_items.matcher import recalibrate_new_item
from app.features.new_items.schemas import (
    NewItemForecastRequest,
    NewItemForecastResponse,
    RecalibrateRequest,
    RecalibrationResult,
)
from app.features.new_items.service import NewItemService

logger = get_logger(__name__)

router = APIRouter(prefix="/new-items", tags=["new-items"])


@router.post(
    "/forecast",
    response_model=NewItemForecastResponse,
    summary="Forecast a SKU without sales history",
    description="""
Score `candidates` against the new item on category (0.4), price within
20%/40% (0.3/0.15), brand (0.2) and supplier (0.1). The best candidate scoring
at least 0.5 supplies the base velocity (its first-month velocity), with
confidence `0.8 x score`. Without a match the forecast assumes 1 unit/day.

Check cadence is daily for the first week, every 3 days until day 30, then
weekly. When `actual_velocity` deviates by more than 30% during days 8-14 the
forecast is flagged for recalibration.
""",
)
async def forecast(
    request: NewItemForecastRequest,
    db: AsyncSession = Depends(get_db),
) -> NewItemForecastResponse:
    """Forecast a new SKU from its best analog."""
    logger.info(
        "new_items.forecast_request_received",
        sku=request.item.sku,
        candidates=len(request.candidates),
    )
    return await NewItemService().forecast(db, request)


@router.post(
    "/recalibrate",
    response_model=RecalibrationResult,
    summary="Blend a new-item forecast with observed sales",
)
async def recalibrate(request: RecalibrateRequest) -> RecalibrationResult:
    """Recalibrate a flagged (or forced) new-item forecast."""
    with sku_context(request.forecast.sku):
        logger.info("new_items.recalibrate_request_received", force=request.force)
        return recalibrate_new_item(
            request.forecast,
            request.actual_velocity,
            get_forecast_config(),
            force=request.force,
        )
