"""Deal planning API routes."""

from datetime import date

from fastapi import APIRouter, HTTPException, status

from app.core.config import get_forecast_config
from app.core.logging import get_logger, sku_context
from app.features.deals.planner import (
    pre_deal_recommendation,
    schedule_deal,
    summarize_deal_history,
)
from app.features.deals.schemas import ScheduleDealRequest, ScheduleDealResponse
from app.shared.utils import trailing_velocity

logger = get_logger(__name__)

router = APIRouter(prefix="/deals", tags=["deals"])


@router.post(
    "/schedule",
    response_model=ScheduleDealResponse,
    summary="Plan FBA inventory for an upcoming deal",
    description="""
Estimate the deal's lift, the FBA units it needs, and the date those units
must be sent. The lift comes from the SKU's deal history for the same deal
type when available, otherwise from deal-type defaults adjusted for Prime Day
and the holiday season. Velocity is the trailing 30-day average of `sales`.
""",
)
async def schedule(request: ScheduleDealRequest) -> ScheduleDealResponse:
    """Plan FBA inventory for an upcoming deal."""
    as_of = request.as_of or date.today()
    config = get_forecast_config()

    with sku_context(request.sku):
        logger.info(
            "deals.schedule_request_received",
            deal_type=request.deal_type,
            start_date=str(request.start_date),
        )
        if request.end_date < request.start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end_date must be on or after start_date",
            )

        velocity = trailing_velocity(request.sales, as_of=as_of)
        deal = schedule_deal(
            sku=request.sku,
            deal_type=request.deal_type,
            start_date=request.start_date,
            end_date=request.end_date,
            discount_percent=request.discount_percent,
            velocity=velocity,
            position=request.inventory,
            config=config,
            history=request.history,
        )
        recommendation = pre_deal_recommendation(deal, velocity, len(request.history), as_of)

        logger.info(
            "deals.schedule_completed",
            required_units=deal.required_units,
            shortfall=deal.shortfall,
            expected_lift=round(deal.expected_sales_lift, 3),
        )
    return ScheduleDealResponse(
        deal=deal,
        recommendation=recommendation,
        history_summary=summarize_deal_history(request.history),
    )
