"""Inventory anomaly detection with root-cause attribution.

Three checks run over SKU snapshots and recent forecast accuracy:

- stockout: no sellable FBA stock although the SKU sold in the last 30 days
- overstock: at least 100 units and more than 300 days of supply
- forecast_miss: three or more forecasts off by more than 50% in the last week

Each finding carries ranked contributing factors and suggested parameter
adjustments that feed back into planning.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date, timedelta

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.anomalies.schemas import (
    AnomalyEvent,
    AnomalySummary,
    AnomalyType,
    ParameterAdjustment,
    RecommendedAction,
    RootCauseFactor,
    SkuSnapshot,
)
from app.shared.utils import trailing_velocity

logger = structlog.get_logger()

VELOCITY_WINDOW_DAYS = 30
ASSUMED_STOCKOUT_DAYS = 7
MARGIN_ESTIMATE = 0.3
SUPPLIER_DELAY_DAYS = 7
BIAS_THRESHOLD_UNITS = 5.0
OVERSTOCK_MIN_UNITS = 100
OVERSTOCK_DAYS_OF_SUPPLY = 300
MISS_ERROR = 0.5
MISS_WINDOW_DAYS = 7
MIN_MISSES = 3
NO_VELOCITY_DAYS_OF_SUPPLY = 999.0
RECENT_ANOMALY_LIMIT = 10

_RootCause = tuple[str, float, list[RootCauseFactor], list[ParameterAdjustment]]


def _records_since(
    records: Sequence[ForecastAccuracyEntry], sku: str | None, start: date, as_of: date
) -> list[ForecastAccuracyEntry]:
    return [
        r
        for r in records
        if (sku is None or r.sku == sku) and start <= r.forecast_date <= as_of
    ]


def _rank(
    factors: list[RootCauseFactor],
    adjustments: list[ParameterAdjustment],
    default_cause: str,
) -> _RootCause:
    factors.sort(key=lambda f: f.contribution, reverse=True)
    if factors:
        return factors[0].factor, factors[0].contribution, factors, adjustments
    return default_cause, 0.5, factors, adjustments


def analyze_stockout_cause(
    snapshot: SkuSnapshot,
    records: Sequence[ForecastAccuracyEntry],
    config: ForecastConfig,
    as_of: date,
) -> _RootCause:
    """Rank supplier delay, a missed spike and under-forecasting.

    Returns:
        Tuple of (primary cause, confidence, factors, adjustments). With no
        factor found the cause is insufficient safety stock at 0.5.
    """
    factors: list[RootCauseFactor] = []
    adjustments: list[ParameterAdjustment] = []

    delay = snapshot.last_po_delay_days
    if delay is not None and delay > SUPPLIER_DELAY_DAYS:
        factors.append(
            RootCauseFactor(
                factor="Supplier delay",
                contribution=0.4,
                evidence=f"Last PO arrived {delay} days late",
            )
        )
        adjustments.append(
            ParameterAdjustment(
                parameter="safety_stock_days",
                old_value=14,
                new_value=21,
                reason="Increase safety stock due to supplier delays",
            )
        )

    if snapshot.is_spiking or snapshot.spike_multiplier > config.seasonality.spike_multiplier:
        factors.append(
            RootCauseFactor(
                factor="Undetected sales spike",
                contribution=0.35,
                evidence=f"Sales spiked {snapshot.spike_multiplier:.1f}x above baseline",
            )
        )
        threshold = config.spike.threshold_pct
        adjustments.append(
            ParameterAdjustment(
                parameter="spike_threshold_pct",
                old_value=threshold,
                new_value=threshold - 10,
                reason="Lower spike detection threshold to catch spikes earlier",
            )
        )

    recent = _records_since(
        records, snapshot.sku, as_of - timedelta(days=VELOCITY_WINDOW_DAYS), as_of
    )
    if recent:
        bias = float(np.mean([r.actual_units - r.predicted_units for r in recent]))
        if bias > BIAS_THRESHOLD_UNITS:
            factors.append(
                RootCauseFactor(
                    factor="Systematic under-forecasting",
                    contribution=0.25,
                    evidence=f"Average forecast {bias:.1f} units below actual",
                )
            )
            adjustments.append(
                ParameterAdjustment(
                    parameter="forecast_bias_correction",
                    old_value=1.0,
                    new_value=1.0 + bias / 10,
                    reason="Apply bias correction to forecasts",
                )
            )

    return _rank(factors, adjustments, "Insufficient safety stock")


def analyze_overstock_cause(
    snapshot: SkuSnapshot,
    records: Sequence[ForecastAccuracyEntry],
    as_of: date,
) -> _RootCause:
    """Rank over-forecasting and a velocity decline; default is excess ordering."""
    factors: list[RootCauseFactor] = []
    adjustments: list[ParameterAdjustment] = []

    recent = _records_since(records, snapshot.sku, as_of - timedelta(days=90), as_of)
    if recent:
        bias = float(np.mean([r.predicted_units - r.actual_units for r in recent]))
        if bias > BIAS_THRESHOLD_UNITS:
            factors.append(
                RootCauseFactor(
                    factor="Systematic over-forecasting",
                    contribution=0.4,
                    evidence=f"Average forecast {bias:.1f} units above actual",
                )
            )
            adjustments.append(
                ParameterAdjustment(
                    parameter="forecast_bias_correction",
                    old_value=1.0,
                    new_value=1.0 - bias / 20,
                    reason="Apply negative bias correction to forecasts",
                )
            )

    recent_velocity = trailing_velocity(snapshot.sales, as_of, VELOCITY_WINDOW_DAYS)
    older_velocity = trailing_velocity(
        snapshot.sales, as_of - timedelta(days=VELOCITY_WINDOW_DAYS), VELOCITY_WINDOW_DAYS
    )
    if older_velocity > 0 and recent_velocity < older_velocity * 0.7:
        factors.append(
            RootCauseFactor(
                factor="Sales velocity decline",
                contribution=0.35,
                evidence=(
                    f"Sales dropped {round((1 - recent_velocity / older_velocity) * 100)}%"
                    " vs prior period"
                ),
            )
        )

    return _rank(factors, adjustments, "Excess ordering")


def detect_stockout(
    snapshot: SkuSnapshot,
    records: Sequence[ForecastAccuracyEntry],
    config: ForecastConfig,
    as_of: date,
) -> AnomalyEvent | None:
    """Stockout when FBA has nothing to sell but the SKU sold in the last 30 days."""
    if snapshot.position.fba_available > 0:
        return None
    velocity = trailing_velocity(snapshot.sales, as_of, VELOCITY_WINDOW_DAYS)
    if velocity <= 0:
        return None

    cause, confidence, factors, adjustments = analyze_stockout_cause(
        snapshot, records, config, as_of
    )
    lost_units = round(velocity * ASSUMED_STOCKOUT_DAYS)
    return AnomalyEvent(
        id=f"stockout-{snapshot.sku}-{as_of:%Y%m%d}",
        sku=snapshot.sku,
        event_type="stockout",
        detected_at=as_of,
        start_date=as_of - timedelta(days=ASSUMED_STOCKOUT_DAYS),
        duration_days=ASSUMED_STOCKOUT_DAYS,
        financial_impact=lost_units * snapshot.price * MARGIN_ESTIMATE,
        unit_impact=lost_units,
        root_cause=cause,
        root_cause_confidence=confidence,
        contributing_factors=factors,
        automatic_adjustments=adjustments,
        notes=f"~{lost_units} units of lost sales at {velocity:.1f}/day",
    )


def detect_overstock(
    snapshot: SkuSnapshot,
    records: Sequence[ForecastAccuracyEntry],
    config: ForecastConfig,
    as_of: date,
) -> AnomalyEvent | None:
    """Overstock when 100+ units cover more than 300 days of sales."""
    total = snapshot.position.total_units
    if total < OVERSTOCK_MIN_UNITS:
        return None
    velocity = trailing_velocity(snapshot.sales, as_of, VELOCITY_WINDOW_DAYS)
    days_of_supply = total / velocity if velocity > 0 else NO_VELOCITY_DAYS_OF_SUPPLY
    if days_of_supply <= OVERSTOCK_DAYS_OF_SUPPLY:
        return None

    excess = total - velocity * config.targets.total
    cause, confidence, factors, adjustments = analyze_overstock_cause(snapshot, records, as_of)
    return AnomalyEvent(
        id=f"overstock-{snapshot.sku}-{as_of:%Y%m%d}",
        sku=snapshot.sku,
        event_type="overstock",
        detected_at=as_of,
        start_date=as_of,
        financial_impact=excess * snapshot.unit_cost,
        unit_impact=round(excess),
        root_cause=cause,
        root_cause_confidence=confidence,
        contributing_factors=factors,
        automatic_adjustments=adjustments,
        notes=f"{round(days_of_supply)} days of supply, {round(excess)} excess units",
    )


def detect_forecast_misses(
    records: Sequence[ForecastAccuracyEntry], as_of: date
) -> list[AnomalyEvent]:
    """SKUs with three or more forecasts off by over 50% in the last week."""
    misses: dict[str, list[ForecastAccuracyEntry]] = defaultdict(list)
    for record in _records_since(records, None, as_of - timedelta(days=MISS_WINDOW_DAYS), as_of):
        if record.percentage_error > MISS_ERROR:
            misses[record.sku].append(record)

    anomalies: list[AnomalyEvent] = []
    for sku, errors in sorted(misses.items()):
        if len(errors) < MIN_MISSES:
            continue
        errors.sort(key=lambda r: r.forecast_date)
        avg_error = float(np.mean([r.percentage_error for r in errors]))
        anomalies.append(
            AnomalyEvent(
                id=f"forecast-miss-{sku}-{as_of:%Y%m%d}",
                sku=sku,
                event_type="forecast_miss",
                detected_at=as_of,
                start_date=errors[0].forecast_date,
                end_date=errors[-1].forecast_date,
                duration_days=len(errors),
                unit_impact=round(sum(abs(r.actual_units - r.predicted_units) for r in errors)),
                root_cause=f"Average forecast error {round(avg_error * 100)}%",
                root_cause_confidence=0.8,
                contributing_factors=[
                    RootCauseFactor(
                        factor="Model accuracy degradation",
                        contribution=0.6,
                        evidence=f"{len(errors)} forecasts missed by more than 50%",
                    )
                ],
                automatic_adjustments=[
                    ParameterAdjustment(
                        parameter="model_weights",
                        old_value=0,
                        new_value=0,
                        reason="Trigger model re-optimization",
                    )
                ],
                notes=f"{len(errors)} forecast misses",
            )
        )
    return anomalies


def detect_anomalies(
    snapshots: Sequence[SkuSnapshot],
    accuracy_records: Sequence[ForecastAccuracyEntry],
    config: ForecastConfig,
    as_of: date,
) -> list[AnomalyEvent]:
    """Run every check: stockouts, then overstock, then forecast misses.

    Args:
        snapshots: Current state of each SKU.
        accuracy_records: Recent forecast accuracy across SKUs.
        config: Engine thresholds.
        as_of: Detection date.

    Returns:
        Detected anomalies.
    """
    anomalies: list[AnomalyEvent] = []
    for snapshot in snapshots:
        stockout = detect_stockout(snapshot, accuracy_records, config, as_of)
        if stockout is not None:
            anomalies.append(stockout)
    for snapshot in snapshots:
        overstock = detect_overstock(snapshot, accuracy_records, config, as_of)
        if overstock is not None:
            anomalies.append(overstock)
    anomalies.extend(detect_forecast_misses(accuracy_records, as_of))

    logger.info(
        "anomalies.detection_completed",
        snapshots=len(snapshots),
        accuracy_records=len(accuracy_records),
        anomalies=len(anomalies),
    )
    return anomalies


def anomaly_summary(anomalies: Sequence[AnomalyEvent]) -> AnomalySummary:
    """Counts by type, total impact and prioritized follow-ups."""
    by_type: dict[AnomalyType, int] = {"stockout": 0, "overstock": 0, "forecast_miss": 0}
    for anomaly in anomalies:
        by_type[anomaly.event_type] += 1

    actions: list[RecommendedAction] = []
    if by_type["stockout"]:
        actions.append(
            RecommendedAction(
                priority="critical",
                action=f"Address {by_type['stockout']} stockout(s) immediately",
                affected_skus=by_type["stockout"],
            )
        )
    if by_type["forecast_miss"]:
        actions.append(
            RecommendedAction(
                priority="high",
                action=f"Review forecast accuracy for {by_type['forecast_miss']} SKU(s)",
                affected_skus=by_type["forecast_miss"],
            )
        )
    if by_type["overstock"]:
        actions.append(
            RecommendedAction(
                priority="medium",
                action=(
                    f"Consider liquidation/promotions for {by_type['overstock']}"
                    " overstocked SKU(s)"
                ),
                affected_skus=by_type["overstock"],
            )
        )

    return AnomalySummary(
        total_anomalies=len(anomalies),
        by_type=dict(by_type),
        total_financial_impact=sum(a.financial_impact for a in anomalies),
        recommended_actions=actions,
        recent_anomalies=list(anomalies[:RECENT_ANOMALY_LIMIT]),
    )
