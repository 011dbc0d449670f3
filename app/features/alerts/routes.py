"""Alert and weekly report API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.features.alerts.schemas import (
    AlertBatch,
    GenerateAlertsRequest,
    WeeklyReport,
    WeeklyReportRequest,
)
from app.features.alerts.service import AlertService

logger = get_logger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post(
    "/generate",
    response_model=AlertBatch,
    summary="Generate replenishment alerts",
    description="""
Build alerts from already-computed results:

- **stockout_imminent**: days of supply at or below the supplier lead time
- **seasonal_prep**: short SKUs ahead of an event (60 days for major peaks,
  30 days otherwise)
- **spike_detected**, **supplier_reliability**, **new_item_deviation**,
  **deal_inventory**: from spike, lead-time, recalibration and deal results
- **forecast_accuracy_low**: SKU MAPE over the last 14 days above 35%
- **goal_adjustment**: recurring stockouts or overstock among `anomalies`

Alerts whose `type-sku` key is listed in `recent_alert_keys` are suppressed.
Alert types with more than `ALERT_MAX_PER_BATCH` alerts are collapsed into a
summary alert. Results are sorted by urgency, then severity.
""",
)
async def generate(
    request: GenerateAlertsRequest,
    db: AsyncSession = Depends(get_db),
) -> AlertBatch:
    """Generate alerts."""
    logger.info(
        "alerts.generate_request_received",
        inventory=len(request.inventory),
        recent_keys=len(request.recent_alert_keys),
    )
    return await AlertService().generate(db, request)


@router.post(
    "/weekly-report",
    response_model=WeeklyReport,
    summary="Weekly planning report",
    description="""
Forecast accuracy for the week (`(1 - MAPE) x 100`) and its trend against the
previous week (improving/declining on a move of more than 2 points), SKUs
that need ordering sorted by urgency, preparation status of upcoming events,
and an anomaly roll-up.

When `accuracy_records` is omitted the stored records of the 7 days ending
`week_of` (and of the 7 days before) are used.
""",
)
async def weekly_report(
    request: WeeklyReportRequest,
    db: AsyncSession = Depends(get_db),
) -> WeeklyReport:
    """Build the weekly report."""
    logger.info(
        "alerts.weekly_report_request_received",
        recommendations=len(request.recommendations),
        anomalies=len(request.anomalies),
    )
    return await AlertService().weekly_report(db, request)
