"""Sales spike detection, cause attribution and decay projection.

A SKU is spiking when its trailing run of days at or above
``1 + threshold_pct/100`` times the baseline lasts at least
``min_consecutive_days``. The baseline is the window of
``baseline_window_days`` that precedes the most recent
``recent_window_days``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.spikes.schemas import (
    DecayPoint,
    InventoryImpact,
    SpikeAlert,
    SpikeCause,
    SpikeCauseDetails,
    SpikeDetection,
    SpikeSignals,
)
from app.shared.schemas import SalesDataPoint, UrgencyLevel
from app.shared.utils import fill_missing_days

logger = structlog.get_logger()

NO_VELOCITY_DAYS_OF_SUPPLY = 999.0
LISTING_CHANGE_WINDOW_DAYS = 7
ORGANIC_AD_SPEND_BAND_PCT = 10.0


def _no_spike(sku: str, confidence: float = 0.0, **kwargs: float) -> SpikeDetection:
    return SpikeDetection(sku=sku, is_spiking=False, confidence=confidence, **kwargs)


def attribute_spike_cause(
    signals: SpikeSignals,
    spike_start: date,
    config: ForecastConfig,
) -> tuple[SpikeCause, float, SpikeCauseDetails]:
    """Rank candidate causes and keep the most confident one.

    Returns:
        Tuple of (cause, confidence, supporting details). The cause is
        ``unknown`` with confidence 0 when no candidate clears
        ``min_cause_confidence``.
    """
    candidates: list[tuple[SpikeCause, float, SpikeCauseDetails]] = []

    change = signals.ad_spend_change_pct
    if change is not None and change > 50:
        candidates.append(
            ("ads", min(0.9, 0.5 + change / 200), SpikeCauseDetails(ad_spend_change_pct=change))
        )
    if signals.active_deal:
        candidates.append(("deal", 0.85, SpikeCauseDetails(active_deal=signals.active_deal)))
    if signals.listing_change_date is not None:
        lag = (spike_start - signals.listing_change_date).days
        if 0 <= lag <= LISTING_CHANGE_WINDOW_DAYS:
            candidates.append(
                (
                    "listing_change",
                    0.7,
                    SpikeCauseDetails(listing_change_date=signals.listing_change_date),
                )
            )
    if not candidates and change is not None and abs(change) <= ORGANIC_AD_SPEND_BAND_PCT:
        candidates.append(("organic", 0.6, SpikeCauseDetails(ad_spend_change_pct=change)))

    # Stable sort keeps the table order for equal confidences
    candidates.sort(key=lambda c: c[1], reverse=True)
    if candidates and candidates[0][1] >= config.spike.min_cause_confidence:
        return candidates[0]
    return "unknown", 0.0, SpikeCauseDetails()


def calculate_inventory_impact(
    current_velocity: float,
    inventory_total: float,
    lead_time_days: int,
    config: ForecastConfig,
) -> InventoryImpact:
    """Days of supply and extra units needed at the spiking velocity."""
    days_of_supply = (
        inventory_total / current_velocity if current_velocity > 0 else NO_VELOCITY_DAYS_OF_SUPPLY
    )
    additional = max(0, math.ceil(current_velocity * config.targets.fba - inventory_total))

    urgency: UrgencyLevel = "ok"
    if days_of_supply <= lead_time_days:
        urgency = "critical"
    elif days_of_supply <= lead_time_days + config.spike.high_urgency_extra_days:
        urgency = "high"
    elif days_of_supply <= lead_time_days + config.spike.medium_urgency_extra_days:
        urgency = "medium"
    elif additional > 0:
        urgency = "low"

    return InventoryImpact(
        days_of_supply_at_new_rate=round(days_of_supply, 1),
        additional_units_needed=additional,
        urgency=urgency,
    )


def generate_decay_projection(multiplier: float, decay_period_days: int) -> list[DecayPoint]:
    """Weekly points relaxing exponentially back to 1.0 over the decay period."""
    tau = decay_period_days / 3
    projection = [
        DecayPoint(
            days_from_now=day,
            projected_multiplier=max(1.0, 1 + (multiplier - 1) * math.exp(-day / tau)),
        )
        for day in range(0, decay_period_days, 7)
    ]
    projection.append(DecayPoint(days_from_now=decay_period_days, projected_multiplier=1.0))
    return projection


def detect_spike(
    sku: str,
    sales: Sequence[SalesDataPoint],
    config: ForecastConfig,
    signals: SpikeSignals | None = None,
    inventory_total: float = 0.0,
    lead_time_days: int | None = None,
    as_of: date | None = None,
) -> SpikeDetection:
    """Classify the SKU's current velocity against its trailing baseline.

    Args:
        sku: SKU identifier.
        sales: Daily sales history; days after as_of are ignored.
        config: Engine thresholds.
        signals: Optional ad/listing/deal signals for cause attribution.
        inventory_total: Total sellable units for the impact estimate.
        lead_time_days: Supplier lead time, default
            ``lead_time.default_lead_time_days``.
        as_of: Reference date, default the last observed day.

    Returns:
        SpikeDetection. Fewer than ``spike.min_points`` days of history is
        not spiking with zero confidence.
    """
    settings = config.spike
    series = fill_missing_days([p for p in sales if as_of is None or p.date <= as_of])
    if len(series) < settings.min_points:
        logger.debug("spikes.insufficient_data", sku=sku, n_points=len(series))
        return _no_spike(sku)

    units = np.array([p.units for p in series], dtype=np.float64)
    recent = units[-settings.recent_window_days :]
    baseline_data = units[
        -(settings.recent_window_days + settings.baseline_window_days) : -settings.recent_window_days
    ]
    baseline = float(np.mean(baseline_data)) if len(baseline_data) else 0.0
    current = float(np.mean(recent))
    confidence = min(
        1.0, len(series) / (settings.recent_window_days + settings.baseline_window_days)
    )

    if baseline <= 0:
        return _no_spike(sku, confidence, current_velocity=current, baseline_velocity=baseline)

    threshold = settings.threshold_multiplier
    run = 0
    max_run = settings.recent_window_days + settings.baseline_window_days
    for value in units[::-1][:max_run]:
        if value / baseline < threshold:
            break
        run += 1

    if run < settings.min_consecutive_days:
        return _no_spike(sku, confidence, current_velocity=current, baseline_velocity=baseline)

    multiplier = float(np.mean(units[-run:])) / baseline
    start = series[-run].date
    cause, cause_confidence, details = attribute_spike_cause(
        signals or SpikeSignals(), start, config
    )
    impact = calculate_inventory_impact(
        current,
        inventory_total,
        config.lead_time.default_lead_time_days if lead_time_days is None else lead_time_days,
        config,
    )

    logger.info(
        "spikes.spike_detected",
        sku=sku,
        multiplier=round(multiplier, 2),
        days_spiking=run,
        cause=cause,
        urgency=impact.urgency,
    )
    return SpikeDetection(
        sku=sku,
        is_spiking=True,
        spike_multiplier=multiplier,
        days_spiking=run,
        spike_start_date=start,
        probable_cause=cause,
        cause_confidence=cause_confidence,
        cause_details=details,
        current_velocity=current,
        baseline_velocity=baseline,
        confidence=confidence,
        inventory_impact=impact,
        projected_decay=generate_decay_projection(multiplier, settings.decay_period_days),
    )


def spike_multiplier_for_day(spike: SpikeDetection | None, days_from_now: int) -> float:
    """Interpolate the decay projection, 1.0 when not spiking or past the decay."""
    if spike is None or not spike.is_spiking or not spike.projected_decay:
        return 1.0
    points = spike.projected_decay
    if days_from_now <= points[0].days_from_now:
        return points[0].projected_multiplier
    for before, after in zip(points, points[1:], strict=False):
        if before.days_from_now <= days_from_now <= after.days_from_now:
            span = after.days_from_now - before.days_from_now
            if span == 0:
                return after.projected_multiplier
            t = (days_from_now - before.days_from_now) / span
            return before.projected_multiplier + t * (
                after.projected_multiplier - before.projected_multiplier
            )
    return 1.0


def apply_spike_adjustment(
    base_forecast: float, spike: SpikeDetection | None, days_from_now: int
) -> float:
    """Scale a forecast by the decayed spike multiplier."""
    return base_forecast * spike_multiplier_for_day(spike, days_from_now)


def generate_spike_alert(spike: SpikeDetection, as_of: date) -> SpikeAlert | None:
    """Operator message for a spiking SKU, None when not spiking."""
    if not spike.is_spiking:
        return None
    started = (as_of - spike.spike_start_date).days if spike.spike_start_date else 0
    impact = spike.inventory_impact
    message = (
        f"SKU {spike.sku} sales are {spike.spike_multiplier:.1f}x normal "
        f"(started {started} days ago). Probable cause: {spike.probable_cause}."
    )
    if impact.urgency == "critical":
        message += (
            f" Current inventory will last only {impact.days_of_supply_at_new_rate:.0f} days"
            " at the new rate."
        )
    elif impact.additional_units_needed > 0:
        message += f" Consider adding {impact.additional_units_needed} units."
    return SpikeAlert(sku=spike.sku, message=message, urgency=impact.urgency)
