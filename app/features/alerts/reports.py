"""Weekly planning report."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.alerts.generator import unprepared_skus
from app.features.alerts.schemas import (
    AccuracyTrend,
    EventPrep,
    OrderLine,
    PrepStatus,
    ReorderRecommendation,
    SkuStockStatus,
    WeeklyReport,
)
from app.features.anomalies.detector import anomaly_summary
from app.features.anomalies.schemas import AnomalyEvent
from app.features.seasonality.detector import get_upcoming_events
from app.features.seasonality.schemas import SeasonalEvent
from app.shared.schemas import URGENCY_ORDER

logger = structlog.get_logger()

TREND_THRESHOLD_POINTS = 2.0
AT_RISK_SHARE = 0.3


def accuracy_pct(records: Sequence[ForecastAccuracyEntry]) -> float | None:
    """(1 - MAPE) x 100, floored at 0; None without records."""
    if not records:
        return None
    mape = float(np.mean([r.percentage_error for r in records]))
    return max(0.0, (1 - mape) * 100)


def accuracy_trend(current: float | None, previous: float | None) -> AccuracyTrend:
    """Improving or declining on a move of more than 2 points."""
    if current is None or previous is None:
        return "stable"
    if current - previous > TREND_THRESHOLD_POINTS:
        return "improving"
    if previous - current > TREND_THRESHOLD_POINTS:
        return "declining"
    return "stable"


def prep_status(unprepared: int, total: int) -> PrepStatus:
    """ready with no short SKUs, at_risk when 30% or more are short."""
    if unprepared == 0:
        return "ready"
    if total and unprepared / total >= AT_RISK_SHARE:
        return "at_risk"
    return "needs_attention"


def generate_weekly_report(
    week_of: date,
    accuracy_records: Sequence[ForecastAccuracyEntry],
    previous_records: Sequence[ForecastAccuracyEntry] | None,
    recommendations: Sequence[ReorderRecommendation],
    inventory: Sequence[SkuStockStatus],
    anomalies: Sequence[AnomalyEvent],
    events: Sequence[SeasonalEvent],
    config: ForecastConfig,
) -> WeeklyReport:
    """Summarize accuracy, orders, event preparation and anomalies for a week.

    Args:
        week_of: Last day of the reported week.
        accuracy_records: Forecast accuracy records of the week.
        previous_records: Records of the week before, for the trend.
        recommendations: Reorder recommendations per SKU.
        inventory: Stock and velocity per SKU, for event preparation.
        anomalies: Anomalies detected this week.
        events: Event catalog.
        config: Engine thresholds.

    Returns:
        WeeklyReport.
    """
    current = accuracy_pct(accuracy_records)
    previous = accuracy_pct(previous_records or [])

    orders = sorted(
        (r for r in recommendations if r.urgency != "ok"),
        key=lambda r: (URGENCY_ORDER[r.urgency], -r.recommended_order_qty, r.sku),
    )
    order_lines = [
        OrderLine(
            sku=r.sku,
            urgency=r.urgency,
            recommended_qty=r.recommended_order_qty,
            reason=". ".join(r.reasoning),
        )
        for r in orders
    ]

    selling = [s for s in inventory if s.velocity > 0]
    upcoming = []
    for u in get_upcoming_events(events, None, week_of, config):
        short = len(unprepared_skus(selling, u.multiplier, config))
        upcoming.append(
            EventPrep(
                event=u.event.name,
                days_until=u.days_until,
                prep_status=prep_status(short, len(selling)),
                skus_affected=short,
            )
        )

    summary = anomaly_summary(anomalies)
    report = WeeklyReport(
        week_of=week_of,
        forecast_accuracy=current,
        accuracy_trend=accuracy_trend(current, previous),
        skus_requiring_orders=order_lines,
        upcoming_events=upcoming,
        anomalies_detected=summary.total_anomalies,
        anomalies_summary=[a.action for a in summary.recommended_actions],
    )
    logger.info(
        "alerts.weekly_report_generated",
        week_of=week_of.isoformat(),
        forecast_accuracy=round(current, 1) if current is not None else None,
        skus_requiring_orders=len(order_lines),
        upcoming_events=len(upcoming),
    )
    return report
