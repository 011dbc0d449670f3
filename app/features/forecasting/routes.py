"""Forecasting API routes for ensemble forecasts and per-SKU plans."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.features.forecasting.schemas import (
    AggregatedForecast,
    EnsembleForecastRequest,
    EnsembleForecastResponse,
    SkuForecastRequest,
    SkuForecastResponse,
)
from app.features.forecasting.service import ForecastingService

logger = get_logger(__name__)

router = APIRouter(prefix="/forecasting", tags=["forecasting"])


@router.post(
    "/ensemble",
    response_model=EnsembleForecastResponse,
    status_code=status.HTTP_200_OK,
    summary="Daily ensemble forecast for a SKU",
    description="""
Forecast `days_ahead` days after `as_of` with four sub-models:

- `prophet`: piecewise trend plus weekly/yearly Fourier seasonality
- `lstm`: attention over similar historical sequences
- `exponential_smoothing`: Holt-Winters with a weekly season
- `arima`: autoregression on differences with a seasonal term

Sub-model outputs are averaged with the SKU's weights (request, then stored
learned weights, then equal), then multiplied by the seasonal event, deal
and spike factors in that order. A sub-model that fails to fit is excluded
and listed in `excluded_models`.

**Degradation:** when the database is unreachable, equal weights and the
default event catalog are used; `weights_source` and `events_source` say
which applied.
""",
)
async def ensemble(
    request: EnsembleForecastRequest,
    db: AsyncSession = Depends(get_db),
) -> EnsembleForecastResponse:
    """Generate daily ensemble forecasts.

    Args:
        request: SKU history and forecast options.
        db: Async database session from dependency.

    Returns:
        Forecasts, aggregate and run metadata.

    Raises:
        BadRequestError: If the horizon exceeds the configured maximum.
    """
    logger.info(
        "forecasting.ensemble_request_received",
        sku=request.sku,
        n_points=len(request.sales),
        days_ahead=request.days_ahead,
    )

    return await ForecastingService().ensemble(db, request)


@router.post(
    "/aggregate",
    response_model=AggregatedForecast,
    summary="Horizon summary of the ensemble forecast",
    description="""
Total and average units over the horizon, average confidence, peak and low
days, and the number of days lifted by seasonality, deals or spikes.
""",
)
async def aggregate(
    request: EnsembleForecastRequest,
    db: AsyncSession = Depends(get_db),
) -> AggregatedForecast:
    """Summarize the forecast horizon."""
    logger.info(
        "forecasting.aggregate_request_received", sku=request.sku, days_ahead=request.days_ahead
    )
    return await ForecastingService().aggregate(db, request)


@router.post(
    "/sku",
    response_model=SkuForecastResponse,
    summary="Forecast and replenishment plan for a SKU",
    description="""
The ensemble forecast plus:

- **safety_stock**: statistical safety stock from the submitted history and
  supplier inputs, with seasonal, supplier, new-item and spike buffers
- **recommendation**: reorder point, order quantity to the 180-day target,
  FBA transfer to the 45-day target, days of supply and urgency
""",
)
async def sku_plan(
    request: SkuForecastRequest,
    db: AsyncSession = Depends(get_db),
) -> SkuForecastResponse:
    """Forecast a SKU and plan its replenishment."""
    logger.info(
        "forecasting.sku_request_received",
        sku=request.sku,
        n_points=len(request.sales),
        inventory_total=request.inventory.total_units,
    )
    return await ForecastingService().sku_plan(db, request)
