"""Alert service: resolves catalog and accuracy inputs, then runs the generator."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, date, datetime, time, timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import rollback_quietly
from app.features.accuracy.repository import ForecastAccuracyRepository
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.alerts.generator import generate_alerts
from app.features.alerts.reports import generate_weekly_report
from app.features.alerts.schemas import (
    AlertBatch,
    GenerateAlertsRequest,
    RaisedAlert,
    WeeklyReport,
    WeeklyReportRequest,
)
from app.features.seasonality.schemas import SeasonalEvent
from app.features.seasonality.service import load_events_or_defaults

logger = structlog.get_logger()

WEEK_DAYS = 7


def suppression_keys(
    keys: Sequence[str],
    raised: Sequence[RaisedAlert],
    as_of: date,
    window_hours: int,
    now: datetime | None = None,
) -> set[str]:
    """Keys to suppress: explicit keys plus alerts raised inside the window.

    The window ends at the earlier of now and the end of the as_of day.
    Naive timestamps are read as UTC.
    """
    end_of_day = datetime.combine(as_of, time.max, tzinfo=UTC)
    reference = min(now or datetime.now(UTC), end_of_day)
    window = timedelta(hours=window_hours)
    suppressed = set(keys)
    for alert in raised:
        raised_at = alert.raised_at
        if raised_at.tzinfo is None:
            raised_at = raised_at.replace(tzinfo=UTC)
        if timedelta(0) <= reference - raised_at <= window:
            suppressed.add(alert.key)
    return suppressed


class AlertService:
    """Generates alerts and weekly reports."""

    def __init__(self) -> None:
        """Initialize the alert service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def _events(
        self, db: AsyncSession | None, events: list[SeasonalEvent] | None
    ) -> list[SeasonalEvent]:
        if events is not None:
            return events
        loaded, _ = await load_events_or_defaults(db)
        return loaded

    async def generate(self, db: AsyncSession | None, request: GenerateAlertsRequest) -> AlertBatch:
        """Generate alerts using the configured suppression and batching."""
        as_of = request.as_of or date.today()
        events = await self._events(db, request.events)
        return generate_alerts(
            inputs=request,
            recent_alert_keys=suppression_keys(
                request.recent_alert_keys,
                request.recent_alerts,
                as_of,
                self.settings.alert_suppress_duplicate_hours,
            ),
            config=self.config,
            as_of=as_of,
            events=events,
            batch_similar=self.settings.alert_batch_similar,
            max_per_batch=self.settings.alert_max_per_batch,
        )

    async def _stored_weeks(
        self, db: AsyncSession | None, week_of: date
    ) -> tuple[list[ForecastAccuracyEntry], list[ForecastAccuracyEntry] | None]:
        """Stored records of the week ending week_of and of the week before."""
        if db is None:
            return [], None
        repo = ForecastAccuracyRepository(db)
        start = week_of - timedelta(days=WEEK_DAYS - 1)
        try:
            current = await repo.list_between(start, week_of)
            previous = await repo.list_between(
                start - timedelta(days=WEEK_DAYS), start - timedelta(days=1)
            )
        except SQLAlchemyError as e:
            logger.warning(
                "persistence.unavailable",
                table="forecast_accuracy",
                error=str(e),
                error_type=type(e).__name__,
            )
            await rollback_quietly(db)
            return [], None
        return current, previous or None

    async def weekly_report(
        self, db: AsyncSession | None, request: WeeklyReportRequest
    ) -> WeeklyReport:
        """Weekly report from submitted data, filling accuracy from storage when omitted."""
        week_of = request.week_of or date.today()
        records = request.accuracy_records
        previous = request.previous_records
        if records is None:
            records, stored_previous = await self._stored_weeks(db, week_of)
            if previous is None:
                previous = stored_previous

        return generate_weekly_report(
            week_of=week_of,
            accuracy_records=records,
            previous_records=previous,
            recommendations=request.recommendations,
            inventory=request.inventory,
            anomalies=request.anomalies,
            events=await self._events(db, request.events),
            config=self.config,
        )
