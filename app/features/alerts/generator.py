"""Alert builders and the alert pipeline.

Each builder turns an already-computed result (stock status, spike, supplier
analysis, recalibration, deal plan, anomalies) into a ``ForecastAlert``.
``generate_alerts`` then suppresses recent duplicates, batches noisy alert
types and sorts by urgency and severity.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Collection, Sequence
from datetime import date, timedelta

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.alerts.schemas import (
    AlertBatch,
    AlertInputs,
    AlertSummary,
    AlertType,
    ForecastAlert,
    SkuStockStatus,
)
from app.features.anomalies.schemas import AnomalyEvent
from app.features.deals.schemas import ScheduledDeal
from app.features.lead_time.schemas import LeadTimeAlert
from app.features.new_items.schemas import RecalibrationResult
from app.features.seasonality.detector import get_upcoming_events
from app.features.seasonality.schemas import SeasonalEvent, UpcomingEvent
from app.features.spikes.detector import generate_spike_alert
from app.features.spikes.schemas import SpikeDetection
from app.shared.schemas import SEVERITY_ORDER, URGENCY_ORDER, Severity

logger = structlog.get_logger()


def _alert_id(alert_type: str, subject: str | None, as_of: date) -> str:
    return f"{alert_type}-{subject or 'global'}-{as_of:%Y%m%d}"


def stockout_alert(
    status: SkuStockStatus, config: ForecastConfig, as_of: date
) -> ForecastAlert | None:
    """Stock runs out before a new order could arrive."""
    if status.velocity <= 0:
        return None
    days_of_supply = status.position.total_units / status.velocity
    lead_time = status.lead_time_days
    if days_of_supply > lead_time:
        return None

    level: Severity = (
        "critical" if days_of_supply <= config.alerts.critical_stockout_days else "high"
    )
    min_units = math.ceil(status.velocity * (lead_time + config.targets.fba))
    return ForecastAlert(
        id=_alert_id("stockout_imminent", status.sku, as_of),
        sku=status.sku,
        alert_type="stockout_imminent",
        severity=level,
        urgency=level,
        title=f"Stockout Risk: {status.sku}",
        message=(
            f"SKU {status.sku} will stockout in {round(days_of_supply)} days. "
            f"Supplier lead time is {lead_time} days. ORDER NOW."
        ),
        context={
            "current_inventory": status.position.total_units,
            "velocity": status.velocity,
            "days_of_supply": round(days_of_supply),
            "lead_time": lead_time,
            "stockout_date": (as_of + timedelta(days=math.floor(days_of_supply))).isoformat(),
        },
        recommended_action=(
            f"Order immediately - minimum {min_units} units to reach "
            f"{config.targets.fba}-day target after restock"
        ),
        action_deadline=as_of,
        created_at=as_of,
    )


def unprepared_skus(
    inventory: Sequence[SkuStockStatus], multiplier: float, config: ForecastConfig
) -> list[str]:
    """SKUs whose stock is short of 30 event days at the event rate plus 20%."""
    settings = config.alerts
    return [
        s.sku
        for s in inventory
        if s.velocity > 0
        and s.position.total_units
        < s.velocity * multiplier * settings.event_period_days * settings.event_stock_buffer
    ]


def seasonal_prep_alert(
    upcoming: UpcomingEvent,
    inventory: Sequence[SkuStockStatus],
    config: ForecastConfig,
    as_of: date,
) -> ForecastAlert | None:
    """Event within 60 days (major peaks) or 30 days (others) with short SKUs."""
    settings = config.alerts
    event = upcoming.event
    days_until = upcoming.days_until
    threshold = (
        settings.major_peak_prep_days
        if event.event_type == "major_peak"
        else settings.event_prep_days
    )
    if not 0 < days_until <= threshold:
        return None
    short = unprepared_skus(inventory, upcoming.multiplier, config)
    if not short:
        return None

    level: Severity = "high" if days_until <= settings.prep_lead_days else "medium"
    subject = str(event.id) if event.id is not None else event.name
    return ForecastAlert(
        id=_alert_id("seasonal_prep", subject, as_of),
        alert_type="seasonal_prep",
        severity=level,
        urgency=level,
        title=f"{event.name} in {days_until} days",
        message=(
            f"{event.name} starts in {days_until} days. "
            f"{len(short)} SKU(s) need additional inventory."
        ),
        context={
            "event_name": event.name,
            "days_until": days_until,
            "multiplier": upcoming.multiplier,
            "unprepared_sku_count": len(short),
            "unprepared_skus": short[:5],
        },
        recommended_action=(
            f"Review and order inventory for {len(short)} SKUs to handle "
            f"{upcoming.multiplier:g}x demand"
        ),
        action_deadline=as_of + timedelta(days=max(0, days_until - settings.prep_lead_days)),
        created_at=as_of,
    )


def spike_alert(spike: SpikeDetection, as_of: date) -> ForecastAlert | None:
    """Alert for a spiking SKU."""
    message = generate_spike_alert(spike, as_of)
    if message is None:
        return None
    urgency = spike.inventory_impact.urgency
    return ForecastAlert(
        id=_alert_id("spike_detected", spike.sku, as_of),
        sku=spike.sku,
        alert_type="spike_detected",
        severity="critical" if urgency == "critical" else "high",
        urgency=urgency,
        title=f"Sales Spike: {spike.sku}",
        message=message.message,
        context={
            "spike_multiplier": spike.spike_multiplier,
            "days_spiking": spike.days_spiking,
            "probable_cause": spike.probable_cause,
        },
        recommended_action="Increase forecast and consider expedited reorder",
        created_at=as_of,
    )


def accuracy_alerts(
    records: Sequence[ForecastAccuracyEntry], config: ForecastConfig, as_of: date
) -> list[ForecastAlert]:
    """SKUs whose MAPE over the last 14 days exceeds the low-accuracy cutoff."""
    start = as_of - timedelta(days=config.alerts.accuracy_window_days)
    errors: dict[str, list[float]] = defaultdict(list)
    for r in records:
        if start <= r.forecast_date <= as_of:
            errors[r.sku].append(r.percentage_error)

    alerts: list[ForecastAlert] = []
    for sku, values in sorted(errors.items()):
        mape = float(np.mean(values))
        if mape <= config.accuracy.low_accuracy_mape:
            continue
        level: Severity = "high" if mape > config.alerts.high_mape else "medium"
        accuracy_pct = max(0.0, 100 - mape * 100)
        alerts.append(
            ForecastAlert(
                id=_alert_id("forecast_accuracy_low", sku, as_of),
                sku=sku,
                alert_type="forecast_accuracy_low",
                severity=level,
                urgency=level,
                title=f"Low Forecast Accuracy: {sku}",
                message=(
                    f"Forecast accuracy for {sku} dropped to {accuracy_pct:.0f}%. "
                    "Investigating cause."
                ),
                context={
                    "mape": round(mape * 100, 1),
                    "accuracy": round(accuracy_pct, 1),
                    "sample_size": len(values),
                },
                recommended_action="Review recent sales patterns and adjust model weights",
                created_at=as_of,
            )
        )
    return alerts


def supplier_alert(alert: LeadTimeAlert, as_of: date) -> ForecastAlert:
    """Wrap a supplier lead-time alert."""
    return ForecastAlert(
        id=_alert_id("supplier_reliability", f"{alert.supplier_id}-{alert.alert_type}", as_of),
        alert_type="supplier_reliability",
        severity=alert.severity,
        urgency="high" if alert.severity == "high" else "medium",
        title=f"Supplier Issue: {alert.supplier_name}",
        message=alert.message,
        context={
            "supplier_id": alert.supplier_id,
            "supplier_name": alert.supplier_name,
            "alert_type": alert.alert_type,
            "previous_value": alert.previous_value,
            "current_value": alert.current_value,
        },
        recommended_action=alert.recommended_action,
        created_at=as_of,
    )


def new_item_alert(result: RecalibrationResult, as_of: date) -> ForecastAlert | None:
    """Alert for a new item whose forecast was recalibrated."""
    if not result.recalibrated:
        return None
    return ForecastAlert(
        id=_alert_id("new_item_deviation", result.sku, as_of),
        sku=result.sku,
        alert_type="new_item_deviation",
        severity="medium",
        urgency="medium",
        title=f"New Item Recalibrated: {result.sku}",
        message=f"New item {result.sku} forecast recalibrated. {result.reason}",
        context={
            "previous_velocity": result.previous_velocity,
            "new_velocity": result.new_velocity,
            "change_percent": round(result.change_percent, 1),
            "watch_status": result.forecast.watch_status,
        },
        recommended_action="Review updated forecast and adjust inventory plans",
        created_at=as_of,
    )


def deal_inventory_alert(
    deal: ScheduledDeal, config: ForecastConfig, as_of: date
) -> ForecastAlert | None:
    """Alert for a scheduled deal that FBA stock cannot cover."""
    if deal.shortfall <= 0:
        return None
    send_by = deal.send_by_date or deal.start_date
    days_left = (send_by - as_of).days
    level: Severity
    if days_left < 0:
        level = "critical"
    elif days_left <= config.alerts.deal_warning_days:
        level = "high"
    else:
        level = "medium"
    return ForecastAlert(
        id=_alert_id("deal_inventory", deal.sku, as_of),
        sku=deal.sku,
        alert_type="deal_inventory",
        severity=level,
        urgency=level,
        title=f"Deal Inventory Short: {deal.sku}",
        message=(
            f"{deal.deal_type} deal starting {deal.start_date.isoformat()} needs "
            f"{deal.required_units} units at FBA; {deal.shortfall} short."
        ),
        context={
            "deal_id": deal.deal_id,
            "required_units": deal.required_units,
            "current_fba_units": deal.current_fba_units,
            "shortfall": deal.shortfall,
            "send_by_date": send_by.isoformat(),
        },
        recommended_action=f"Send {deal.shortfall} units to FBA by {send_by.isoformat()}",
        action_deadline=send_by,
        created_at=as_of,
    )


def goal_adjustment_alerts(
    anomalies: Sequence[AnomalyEvent], config: ForecastConfig, as_of: date
) -> list[ForecastAlert]:
    """Suggest target changes when stockouts or overstock keep recurring."""
    stockouts = sum(1 for a in anomalies if a.event_type == "stockout")
    overstocked = [a for a in anomalies if a.event_type == "overstock"]
    target = config.targets.total
    settings = config.alerts
    alerts: list[ForecastAlert] = []

    if stockouts > settings.stockout_goal_count:
        raised = target + settings.stockout_target_step
        alerts.append(
            ForecastAlert(
                id=_alert_id("goal_adjustment", "stockout", as_of),
                alert_type="goal_adjustment",
                severity="medium",
                urgency="medium",
                title="Consider Adjusting Inventory Targets",
                message=(
                    f"You're experiencing stockouts on {stockouts} SKUs. Consider increasing "
                    f"your total inventory target from {target} to {raised} days."
                ),
                context={
                    "current_target": target,
                    "recommended_target": raised,
                    "stockout_count": stockouts,
                },
                recommended_action=(
                    f"Increase total inventory target to {raised} days for better coverage"
                ),
                created_at=as_of,
            )
        )

    if len(overstocked) > settings.overstock_goal_count:
        lowered = target - settings.overstock_target_step
        alerts.append(
            ForecastAlert(
                id=_alert_id("goal_adjustment", "overstock", as_of),
                alert_type="goal_adjustment",
                severity="low",
                urgency="low",
                title="Excess Inventory Detected",
                message=(
                    f"{len(overstocked)} SKUs have excess inventory. You could reduce your "
                    f"target from {target} to {lowered} days to free up cash."
                ),
                context={
                    "current_target": target,
                    "recommended_target": lowered,
                    "overstock_count": len(overstocked),
                    "estimated_cash_freed": sum(a.financial_impact for a in overstocked),
                },
                recommended_action=(
                    f"Consider reducing inventory target to {lowered} days to optimize cash flow"
                ),
                created_at=as_of,
            )
        )
    return alerts


def suppress_duplicates(
    alerts: Sequence[ForecastAlert], recent_keys: Collection[str]
) -> list[ForecastAlert]:
    """Drop alerts whose type-sku key was raised within the suppression window."""
    return [a for a in alerts if a.key not in recent_keys]


def sort_alerts(alerts: Sequence[ForecastAlert]) -> list[ForecastAlert]:
    """Most urgent first, then most severe."""
    return sorted(alerts, key=lambda a: (URGENCY_ORDER[a.urgency], SEVERITY_ORDER[a.severity]))


def batch_similar_alerts(
    alerts: Sequence[ForecastAlert], max_per_batch: int, as_of: date
) -> list[ForecastAlert]:
    """Collapse all but the first ``max_per_batch - 1`` alerts of a type into one."""
    by_type: dict[AlertType, list[ForecastAlert]] = defaultdict(list)
    for alert in alerts:
        by_type[alert.alert_type].append(alert)

    batched: list[ForecastAlert] = []
    for alert_type, group in by_type.items():
        if len(group) <= max_per_batch:
            batched.extend(group)
            continue
        keep = max_per_batch - 1
        batched.extend(group[:keep])
        rest = group[keep:]
        batched.append(
            ForecastAlert(
                id=_alert_id(f"batch-{alert_type}", None, as_of),
                alert_type=alert_type,
                severity=group[0].severity,
                urgency=group[0].urgency,
                title=f"{len(rest)} more {alert_type.replace('_', ' ')} alerts",
                message=f"{len(rest)} additional alerts of this type.",
                context={
                    "batched_count": len(rest),
                    "batched_skus": [a.sku for a in rest],
                },
                recommended_action="Review all alerts in this category",
                created_at=as_of,
            )
        )
    return batched


def summarize_alerts(alerts: Sequence[ForecastAlert]) -> AlertSummary:
    """Totals by severity and type."""
    by_severity: dict[str, int] = dict.fromkeys(SEVERITY_ORDER, 0)
    by_type: dict[str, int] = {}
    for alert in alerts:
        by_severity[alert.severity] += 1
        by_type[alert.alert_type] = by_type.get(alert.alert_type, 0) + 1
    return AlertSummary(total=len(alerts), by_severity=by_severity, by_type=by_type)


def build_alerts(
    inputs: AlertInputs,
    events: Sequence[SeasonalEvent],
    config: ForecastConfig,
    as_of: date,
) -> list[ForecastAlert]:
    """Run every builder over the inputs, in alert-type order."""
    alerts: list[ForecastAlert] = []
    for status in inputs.inventory:
        if (alert := stockout_alert(status, config, as_of)) is not None:
            alerts.append(alert)
    for upcoming in get_upcoming_events(
        events, None, as_of, config, horizon_days=config.alerts.major_peak_prep_days
    ):
        if (alert := seasonal_prep_alert(upcoming, inputs.inventory, config, as_of)) is not None:
            alerts.append(alert)
    for spike in inputs.spikes:
        if (alert := spike_alert(spike, as_of)) is not None:
            alerts.append(alert)
    alerts.extend(accuracy_alerts(inputs.accuracy_records, config, as_of))
    alerts.extend(supplier_alert(a, as_of) for a in inputs.supplier_alerts)
    for result in inputs.recalibrations:
        if (alert := new_item_alert(result, as_of)) is not None:
            alerts.append(alert)
    for deal in inputs.deals:
        if (alert := deal_inventory_alert(deal, config, as_of)) is not None:
            alerts.append(alert)
    alerts.extend(goal_adjustment_alerts(inputs.anomalies, config, as_of))
    return alerts


def generate_alerts(
    inputs: AlertInputs,
    recent_alert_keys: Collection[str],
    config: ForecastConfig,
    as_of: date,
    events: Sequence[SeasonalEvent] = (),
    batch_similar: bool = True,
    max_per_batch: int = 10,
) -> AlertBatch:
    """Build, de-duplicate, batch and sort alerts.

    Args:
        inputs: Already-computed results to alert on.
        recent_alert_keys: Keys of alerts raised in the suppression window.
        config: Engine thresholds.
        as_of: Alert date.
        events: Event catalog for seasonal preparation checks.
        batch_similar: Collapse alert types with more than max_per_batch alerts.
        max_per_batch: Alerts kept per type before batching, summary included.

    Returns:
        AlertBatch with alerts sorted by urgency then severity.
    """
    built = build_alerts(inputs, events, config, as_of)
    kept = suppress_duplicates(built, set(recent_alert_keys))
    # kept alerts of a batched type are its most urgent ones
    ordered = sort_alerts(kept)
    if batch_similar:
        ordered = sort_alerts(batch_similar_alerts(ordered, max_per_batch, as_of))

    logger.info(
        "alerts.generation_completed",
        built=len(built),
        suppressed=len(built) - len(kept),
        emitted=len(ordered),
    )
    return AlertBatch(
        alerts=ordered,
        summary=summarize_alerts(ordered),
        suppressed=len(built) - len(kept),
    )
