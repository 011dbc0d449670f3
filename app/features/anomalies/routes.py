"""Anomaly detection API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.features.anomalies.schemas import AnomalyDetectRequest, AnomalyDetectResponse
from app.features.anomalies.service import AnomalyService

logger = get_logger(__name__)

router = APIRouter(prefix="/anomalies", tags=["anomalies"])


@router.post(
    "/detect",
    response_model=AnomalyDetectResponse,
    summary="Detect stockouts, overstock and forecast misses",
    description="""
Check each SKU snapshot for:

- **stockout**: no FBA stock while the SKU sold in the last 30 days; impact is
  7 days of lost sales at a 30% margin
- **overstock**: 100+ units and more than 300 days of supply; impact is the
  cost of units beyond 180 days of supply
- **forecast_miss**: three or more forecasts off by more than 50% in the last
  7 days

Root causes (supplier delay, missed spike, forecast bias, velocity decline)
are ranked and come with suggested parameter adjustments. When
`accuracy_records` is omitted the stored records of the last 90 days are used.
""",
)
async def detect(
    request: AnomalyDetectRequest,
    db: AsyncSession = Depends(get_db),
) -> AnomalyDetectResponse:
    """Detect inventory anomalies."""
    logger.info("anomalies.detect_request_received", snapshots=len(request.snapshots))
    return await AnomalyService().detect(db, request)
