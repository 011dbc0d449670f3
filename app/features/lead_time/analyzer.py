"""Supplier lead-time reliability from purchase-order history.

Only delivered orders count. Each supplier gets three lead times (stated,
average actual and 95th percentile worst case) plus a reliability score:

    reliability = 0.5 * on_time_rate + 0.5 * max(0, 1 - std / stated)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.lead_time.schemas import (
    LeadTimeAlert,
    LeadTimeData,
    PurchaseOrderRecord,
    SupplierGrade,
    SupplierScorecard,
)

logger = structlog.get_logger()

NO_HISTORY_RELIABILITY = 0.5
NO_HISTORY_WORST_CASE_FACTOR = 1.5
P95 = 0.95

GRADE_CUTOFFS: tuple[tuple[float, SupplierGrade], ...] = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)


def _delivered_lead_times(
    purchase_orders: Sequence[PurchaseOrderRecord], stated_lead_time: int
) -> tuple[list[int], list[int]]:
    """Lead times and their stated targets, most recent delivery first."""
    delivered = sorted(
        (po for po in purchase_orders if po.actual_delivery_at is not None),
        key=lambda po: po.actual_delivery_at or po.ordered_at,
        reverse=True,
    )
    lead_times = [math.ceil(po.lead_time_days or 0) for po in delivered]
    targets = [
        po.stated_lead_time_days if po.stated_lead_time_days is not None else stated_lead_time
        for po in delivered
    ]
    return lead_times, targets


def lead_time_trend(lead_times: Sequence[int], config: ForecastConfig) -> tuple[float, bool]:
    """Compare the most recent window of orders against the one before it.

    Args:
        lead_times: Lead times, most recent first.
        config: Engine thresholds.

    Returns:
        Tuple of (trend_pct, is_getting_worse). Neutral when the older
        window has fewer than ``min_trend_orders`` orders.
    """
    settings = config.lead_time
    window = settings.trend_window
    recent = lead_times[:window]
    older = lead_times[window : 2 * window]
    if len(older) < settings.min_trend_orders or not recent:
        return 0.0, False

    older_avg = float(np.mean(older))
    if older_avg == 0:
        return 0.0, False
    trend_pct = (float(np.mean(recent)) - older_avg) / older_avg * 100
    return trend_pct, trend_pct > settings.worsening_pct


def analyze_supplier_lead_time(
    supplier_id: str,
    supplier_name: str,
    stated_lead_time: int,
    purchase_orders: Sequence[PurchaseOrderRecord],
    config: ForecastConfig,
    as_of: date,
) -> LeadTimeData:
    """Analyze a supplier's purchase-order history.

    Args:
        supplier_id: Supplier identifier.
        supplier_name: Display name.
        stated_lead_time: Days the supplier promises.
        purchase_orders: Orders in any order; open orders are ignored.
        config: Engine thresholds.
        as_of: Calculation date.

    Returns:
        LeadTimeData. With fewer than ``min_purchase_orders`` deliveries the
        stated lead time is assumed with a neutral 0.5 reliability.
    """
    lead_times, targets = _delivered_lead_times(purchase_orders, stated_lead_time)
    fba = config.fba
    common = {
        "supplier_id": supplier_id,
        "supplier_name": supplier_name,
        "stated_lead_time": stated_lead_time,
        "avg_fba_receiving_time": float(fba.receiving_days),
        "worst_case_fba_receiving_time": float(fba.worst_case_receiving_days),
        "po_count": len(lead_times),
        "last_calculated": as_of,
    }

    if len(lead_times) < config.lead_time.min_purchase_orders:
        logger.info(
            "lead_time.insufficient_history",
            supplier_id=supplier_id,
            delivered=len(lead_times),
            min_orders=config.lead_time.min_purchase_orders,
        )
        return LeadTimeData(
            avg_actual_lead_time=float(stated_lead_time),
            worst_case_lead_time=float(
                math.ceil(stated_lead_time * NO_HISTORY_WORST_CASE_FACTOR)
            ),
            on_time_rate=1.0,
            lead_time_variance=0.0,
            reliability_score=NO_HISTORY_RELIABILITY,
            **common,
        )

    values = np.array(lead_times, dtype=np.float64)
    avg = float(np.mean(values))
    ordered = np.sort(values)
    worst = float(ordered[math.ceil(len(ordered) * P95) - 1])
    std = float(np.std(values))
    on_time = sum(1 for lt, target in zip(lead_times, targets, strict=True) if lt <= target)
    on_time_rate = on_time / len(lead_times)
    variance_score = max(0.0, 1.0 - std / stated_lead_time)
    reliability = 0.5 * on_time_rate + 0.5 * variance_score
    trend_pct, worsening = lead_time_trend(lead_times, config)

    logger.info(
        "lead_time.analysis_completed",
        supplier_id=supplier_id,
        delivered=len(lead_times),
        avg_lead_time=round(avg, 2),
        reliability=round(reliability, 3),
        is_getting_worse=worsening,
    )
    return LeadTimeData(
        avg_actual_lead_time=avg,
        worst_case_lead_time=worst,
        on_time_rate=on_time_rate,
        lead_time_variance=std,
        reliability_score=reliability,
        is_getting_worse=worsening,
        trend_pct=trend_pct,
        **common,
    )


def effective_lead_time(data: LeadTimeData, config: ForecastConfig) -> int:
    """Planning lead time: average, or average/worst midpoint for unreliable suppliers."""
    if data.reliability_score < config.safety_stock.reliability_threshold:
        return math.ceil((data.avg_actual_lead_time + data.worst_case_lead_time) / 2)
    return math.ceil(data.avg_actual_lead_time)


def total_lead_time(data: LeadTimeData, config: ForecastConfig) -> int:
    """Effective supplier lead time plus FBA receiving and its buffer."""
    return (
        effective_lead_time(data, config)
        + math.ceil(data.avg_fba_receiving_time)
        + config.fba.receiving_buffer_days
    )


def check_lead_time_alerts(data: LeadTimeData, config: ForecastConfig) -> list[LeadTimeAlert]:
    """Alerts for average drift, high variability and low reliability."""
    settings = config.lead_time
    target = config.safety_stock.reliability_threshold
    alerts: list[LeadTimeAlert] = []
    stated = data.stated_lead_time
    avg = data.avg_actual_lead_time

    if avg > stated * settings.avg_increase_ratio:
        over_pct = round((avg - stated) / stated * 100)
        alerts.append(
            LeadTimeAlert(
                supplier_id=data.supplier_id,
                supplier_name=data.supplier_name,
                alert_type="avg_increase",
                severity="high" if avg > stated * settings.avg_increase_high_ratio else "medium",
                message=(
                    f"Average lead time ({avg:.0f} days) exceeds stated "
                    f"({stated} days) by {over_pct}%"
                ),
                previous_value=float(stated),
                current_value=avg,
                recommended_action="Increase safety stock or negotiate better terms with supplier",
            )
        )

    if data.lead_time_variance > stated * settings.variance_ratio:
        alerts.append(
            LeadTimeAlert(
                supplier_id=data.supplier_id,
                supplier_name=data.supplier_name,
                alert_type="variance_increase",
                severity="medium",
                message=(
                    f"Lead time variance is high (±{data.lead_time_variance:.1f} days), "
                    "making forecasting unreliable"
                ),
                previous_value=0.0,
                current_value=data.lead_time_variance,
                recommended_action="Increase safety stock to account for variability",
            )
        )

    if data.reliability_score < settings.reliability_alert:
        alerts.append(
            LeadTimeAlert(
                supplier_id=data.supplier_id,
                supplier_name=data.supplier_name,
                alert_type="reliability_drop",
                severity=(
                    "high" if data.reliability_score < settings.reliability_alert_high else "medium"
                ),
                message=(
                    f"Supplier reliability score is {data.reliability_score * 100:.0f}% "
                    f"(target: >{target * 100:.0f}%)"
                ),
                previous_value=target,
                current_value=data.reliability_score,
                recommended_action=(
                    "Consider backup suppliers or significantly increase safety stock"
                ),
            )
        )

    if alerts:
        logger.info(
            "lead_time.alerts_raised",
            supplier_id=data.supplier_id,
            alert_types=[a.alert_type for a in alerts],
        )
    return alerts


def _grade(score: float) -> SupplierGrade:
    for cutoff, grade in GRADE_CUTOFFS:
        if score >= cutoff:
            return grade
    return "F"


def supplier_scorecard(data: LeadTimeData, config: ForecastConfig) -> SupplierScorecard:
    """Grade a supplier A-F on reliability and list strengths and weaknesses."""
    stated = data.stated_lead_time
    avg = data.avg_actual_lead_time

    strengths: list[str] = []
    if data.reliability_score >= 0.9:
        strengths.append("Highly reliable supplier")
    if data.on_time_rate >= 0.95:
        strengths.append("Consistently delivers on time")
    if data.po_count > 0 and data.lead_time_variance <= 2:
        strengths.append("Predictable lead times")
    if data.po_count > 0 and avg <= stated:
        strengths.append("Delivers at or faster than the stated lead time")

    weaknesses: list[str] = []
    if avg > stated * 1.2:
        weaknesses.append(
            f"Lead times are {round((avg - stated) / stated * 100)}% longer than stated"
            " - update forecasting parameters"
        )
    if data.reliability_score < config.safety_stock.reliability_threshold:
        weaknesses.append("Low reliability - increase safety stock by 20-30%")
    if data.is_getting_worse:
        weaknesses.append(
            f"Lead times trending worse ({data.trend_pct:.0f}% increase) - monitor closely"
        )
    if data.lead_time_variance > 7:
        weaknesses.append("High variability in lead times - maintain larger buffer stock")

    score = data.reliability_score * 100
    return SupplierScorecard(
        supplier_id=data.supplier_id,
        supplier_name=data.supplier_name,
        stated_lead_time=stated,
        actual_lead_time=round(avg),
        worst_case_lead_time=round(data.worst_case_lead_time),
        trend=f"+{data.trend_pct:.0f}%" if data.is_getting_worse else "Stable",
        reliability_score=round(score),
        on_time_rate=round(data.on_time_rate * 100),
        variance_days=round(data.lead_time_variance),
        grade=_grade(score),
        strengths=strengths,
        weaknesses=weaknesses,
    )
