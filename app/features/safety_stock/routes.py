"""Safety-stock API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_forecast_config
from app.core.database import get_db
from app.core.logging import get_logger
from app.features.safety_stock.calculator import get_recommended_safety_stock_days
from app.features.safety_stock.schemas import (
    RecommendedDaysRequest,
    RecommendedDaysResponse,
    SafetyStockCalculation,
    SafetyStockRequest,
)
from app.features.safety_stock.service import SafetyStockService

logger = get_logger(__name__)

router = APIRouter(prefix="/safety-stock", tags=["safety-stock"])


@router.post(
    "/calculate",
    response_model=SafetyStockCalculation,
    summary="Calculate safety stock for a SKU",
    description="""
Statistical base `Z x sqrt(L x sd^2 + d^2 x sL^2)` from the last 90 days of
demand and the supplier lead time, then buffers for an upcoming peak season,
supplier reliability, new-item uncertainty and an active spike.

The result is clamped to 7-60 days of average demand. Every applied
adjustment is listed in `reasoning`. When `events` is omitted the stored
event catalog is used, or the default catalog if it is unavailable.
""",
)
async def calculate(
    request: SafetyStockRequest,
    db: AsyncSession = Depends(get_db),
) -> SafetyStockCalculation:
    """Calculate safety stock."""
    logger.info(
        "safety_stock.calculate_request_received", sku=request.sku, n_points=len(request.sales)
    )
    return await SafetyStockService().calculate(db, request)


@router.post(
    "/recommended-days",
    response_model=RecommendedDaysResponse,
    summary="Rule-of-thumb safety-stock days",
)
async def recommended_days(request: RecommendedDaysRequest) -> RecommendedDaysResponse:
    """Recommended safety-stock cover in days."""
    return RecommendedDaysResponse(
        importance=request.importance,
        days=get_recommended_safety_stock_days(
            request.importance,
            request.supplier_reliability,
            request.near_season,
            get_forecast_config(),
        ),
    )
