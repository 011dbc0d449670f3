"""Anomaly service: gathers recent accuracy records and runs the detector."""

from __future__ import annotations

from datetime import date, timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import rollback_quietly
from app.features.accuracy.repository import ForecastAccuracyRepository
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.anomalies.detector import anomaly_summary, detect_anomalies
from app.features.anomalies.schemas import AnomalyDetectRequest, AnomalyDetectResponse

logger = structlog.get_logger()

ACCURACY_LOOKBACK_DAYS = 90


class AnomalyService:
    """Runs anomaly checks over SKU snapshots."""

    def __init__(self) -> None:
        """Initialize the anomaly service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def _recent_accuracy(
        self, db: AsyncSession | None, as_of: date
    ) -> list[ForecastAccuracyEntry]:
        """Stored accuracy records of the last 90 days, or none when unavailable."""
        if db is None:
            return []
        try:
            return await ForecastAccuracyRepository(db).list_between(
                as_of - timedelta(days=ACCURACY_LOOKBACK_DAYS), as_of
            )
        except SQLAlchemyError as e:
            logger.warning(
                "persistence.unavailable",
                table="forecast_accuracy",
                error=str(e),
                error_type=type(e).__name__,
            )
            await rollback_quietly(db)
            return []

    async def detect(
        self, db: AsyncSession | None, request: AnomalyDetectRequest
    ) -> AnomalyDetectResponse:
        """Detect anomalies and summarize them."""
        as_of = request.as_of or date.today()
        records = request.accuracy_records
        if records is None:
            records = await self._recent_accuracy(db, as_of)

        anomalies = detect_anomalies(request.snapshots, records, self.config, as_of)
        return AnomalyDetectResponse(anomalies=anomalies, summary=anomaly_summary(anomalies))
