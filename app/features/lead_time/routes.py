"""Lead-time reliability API routes."""

from datetime import date

from fastapi import APIRouter

from app.core.config import get_forecast_config
from app.core.logging import get_logger
from app.features.lead_time.analyzer import (
    analyze_supplier_lead_time,
    check_lead_time_alerts,
    effective_lead_time,
    supplier_scorecard,
    total_lead_time,
)
from app.features.lead_time.schemas import (
    LeadTimeAnalyzeRequest,
    LeadTimeAnalyzeResponse,
    LeadTimeData,
    SupplierScorecard,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/lead-time", tags=["lead-time"])


def _analyze(request: LeadTimeAnalyzeRequest) -> LeadTimeData:
    return analyze_supplier_lead_time(
        supplier_id=request.supplier_id,
        supplier_name=request.supplier_name,
        stated_lead_time=request.stated_lead_time,
        purchase_orders=request.purchase_orders,
        config=get_forecast_config(),
        as_of=request.as_of or date.today(),
    )


@router.post(
    "/analyze",
    response_model=LeadTimeAnalyzeResponse,
    summary="Analyze supplier lead times",
    description="""
Compute stated, average and 95th-percentile lead times, on-time rate,
variability and a composite reliability score from delivered purchase orders.

The response also carries the effective planning lead time (average, or the
average/worst-case midpoint when reliability is below 0.7), the total lead
time including FBA receiving and a 3-day buffer, and any reliability alerts.
""",
)
async def analyze(request: LeadTimeAnalyzeRequest) -> LeadTimeAnalyzeResponse:
    """Analyze a supplier's purchase-order history."""
    logger.info(
        "lead_time.analyze_request_received",
        supplier_id=request.supplier_id,
        purchase_orders=len(request.purchase_orders),
    )
    config = get_forecast_config()
    data = _analyze(request)
    return LeadTimeAnalyzeResponse(
        data=data,
        effective_lead_time=effective_lead_time(data, config),
        total_lead_time=total_lead_time(data, config),
        alerts=check_lead_time_alerts(data, config),
    )


@router.post(
    "/scorecard",
    response_model=SupplierScorecard,
    summary="Grade a supplier",
    description="Grade A-F at reliability scores of 90/80/70/60 with strengths and weaknesses.",
)
async def scorecard(request: LeadTimeAnalyzeRequest) -> SupplierScorecard:
    """Build a supplier scorecard."""
    logger.info("lead_time.scorecard_request_received", supplier_id=request.supplier_id)
    return supplier_scorecard(_analyze(request), get_forecast_config())
