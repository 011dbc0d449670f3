"""Spike detection API routes."""

from datetime import date

from fastapi import APIRouter

from app.core.config import get_forecast_config
from app.core.logging import get_logger, sku_context
from app.features.spikes.detector import detect_spike, generate_spike_alert
from app.features.spikes.schemas import SpikeDetectRequest, SpikeDetectResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/spikes", tags=["spikes"])


@router.post(
    "/detect",
    response_model=SpikeDetectResponse,
    summary="Detect a sales spike",
    description="""
Compare the SKU's trailing run of days against the 30-day baseline that
precedes the most recent week. A spike needs at least `min_consecutive_days`
days at or above `1 + threshold_pct/100` times baseline.

Optional signals (ad-spend change, listing edit date, active deal) are used to
attribute a probable cause. The response includes a decay projection and,
when spiking, a short operator alert.
""",
)
async def detect(request: SpikeDetectRequest) -> SpikeDetectResponse:
    """Detect a sales spike for a SKU."""
    as_of = request.as_of or date.today()
    with sku_context(request.sku):
        logger.info("spikes.detect_request_received", n_points=len(request.sales))
        detection = detect_spike(
            sku=request.sku,
            sales=request.sales,
            config=get_forecast_config(),
            signals=request.signals,
            inventory_total=request.inventory.total_units,
            lead_time_days=request.lead_time_days,
            as_of=as_of,
        )
    return SpikeDetectResponse(detection=detection, alert=generate_spike_alert(detection, as_of))
