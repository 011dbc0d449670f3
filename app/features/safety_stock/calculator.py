"""Safety stock from demand and lead-time variability.

Base formula, combining demand and lead-time uncertainty:

    SS = Z * sqrt(L * sigma_d^2 + d^2 * sigma_L^2)

followed by seasonal, supplier, new-item and spike buffers and a clamp to
``[min_days, max_days]`` days of average demand.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date

import numpy as np
import structlog
from scipy.stats import norm

from app.core.config import ForecastConfig
from app.features.safety_stock.schemas import (
    DemandStats,
    ImportanceLevel,
    LeadTimeProfile,
    SafetyStockCalculation,
    SafetyStockContext,
)
from app.features.seasonality.detector import get_upcoming_events
from app.features.seasonality.schemas import SeasonalEvent
from app.features.spikes.schemas import SpikeDetection
from app.shared.schemas import SalesDataPoint
from app.shared.utils import clamp, fill_missing_days, units_array

logger = structlog.get_logger()

DEMAND_WINDOW_DAYS = 90
NO_HISTORY_DEMAND = DemandStats(mean=1.0, std=0.5)
PEAK_EVENT_TYPES = ("major_peak", "micro_peak")

RECOMMENDED_BASE_DAYS: dict[ImportanceLevel, int] = {
    "best_seller": 21,
    "regular": 14,
    "slow_mover": 10,
}


def demand_stats_from_sales(
    sales: Sequence[SalesDataPoint], window_days: int = DEMAND_WINDOW_DAYS
) -> DemandStats:
    """Mean and population std of the last ``window_days`` days.

    Missing days count as zero. Without history the demand is assumed to be
    1 unit/day with a std of 0.5.
    """
    history = fill_missing_days(sales)[-window_days:]
    if not history:
        return NO_HISTORY_DEMAND
    y = units_array(history)
    return DemandStats(mean=float(np.mean(y)), std=float(np.std(y)))


def classify_importance(mean_demand: float, config: ForecastConfig) -> ImportanceLevel:
    """best_seller at 10+/day, regular at 1+/day, else slow_mover."""
    tiers = config.safety_stock
    if mean_demand >= tiers.best_seller_daily_units:
        return "best_seller"
    if mean_demand >= tiers.regular_daily_units:
        return "regular"
    return "slow_mover"


def z_score_for(importance: ImportanceLevel, config: ForecastConfig) -> float:
    """Configured Z-score of an importance tier."""
    return float(getattr(config.safety_stock_z, importance))


def service_level_for_z(z: float) -> float:
    """Cycle service level implied by a Z-score (standard normal CDF)."""
    return float(norm.cdf(z))


def base_safety_stock(
    z: float, lead_time_days: float, demand_std: float, demand_mean: float, lead_time_std: float
) -> float:
    """Z * sqrt(L * sigma_d^2 + d^2 * sigma_L^2)."""
    combined = lead_time_days * demand_std**2 + demand_mean**2 * lead_time_std**2
    return z * math.sqrt(max(0.0, combined))


def seasonal_context(
    events: Sequence[SeasonalEvent],
    sku: str | None,
    as_of: date,
    config: ForecastConfig,
    is_new_item: bool = False,
    spike: SpikeDetection | None = None,
) -> SafetyStockContext:
    """Build the adjustment context from the event catalog and SKU state.

    The nearest active peak event starting within ``seasonal_proximity_days``
    (or already in progress) becomes the upcoming event.
    """
    upcoming = [
        u
        for u in get_upcoming_events(
            events, sku, as_of, config, horizon_days=config.safety_stock.seasonal_proximity_days
        )
        if u.event.event_type in PEAK_EVENT_TYPES
    ]
    nearest = upcoming[0] if upcoming else None
    return SafetyStockContext(
        upcoming_event=nearest.event.name if nearest else None,
        days_until_event=nearest.days_until if nearest else None,
        is_new_item=is_new_item,
        is_spiking=bool(spike and spike.is_spiking),
        spike_multiplier=spike.spike_multiplier if spike and spike.is_spiking else 1.0,
    )


def calculate_safety_stock(
    sku: str,
    demand: DemandStats | None,
    lead_time: LeadTimeProfile | None,
    context: SafetyStockContext | None,
    config: ForecastConfig,
) -> SafetyStockCalculation:
    """Calculate safety stock with an itemized reasoning trail.

    Adjustments, applied in this order:
    - Seasonal: ``mean * seasonal_buffer_days`` when a peak is within
      ``seasonal_proximity_days``
    - Supplier: +30% of base below ``reliability_threshold``, else +15%
      when worsening
    - New item: ``mean * new_item_buffer_days``
    - Spike: ``base * (multiplier - 1)``

    Args:
        sku: SKU identifier.
        demand: Demand statistics; defaults to 1/day with std 0.5.
        lead_time: Lead-time inputs; defaults to ``default_lead_time_days``
            with a std of ``lead_time_std_factor`` of that.
        context: Seasonal, new-item and spike state.
        config: Engine thresholds.

    Returns:
        SafetyStockCalculation; final_safety_stock is never negative.
    """
    demand = demand or NO_HISTORY_DEMAND
    lead_time = lead_time or LeadTimeProfile(days=float(config.lead_time.default_lead_time_days))
    context = context or SafetyStockContext()
    settings = config.safety_stock

    lead_time_std = (
        lead_time.std
        if lead_time.std is not None
        else lead_time.days * settings.lead_time_std_factor
    )
    importance = classify_importance(demand.mean, config)
    z = z_score_for(importance, config)
    base = base_safety_stock(z, lead_time.days, demand.std, demand.mean, lead_time_std)

    reasoning = [
        f"Base safety stock: {round(base)} units "
        f"(Z={z:.2f}, L={lead_time.days:g} days, σd={demand.std:.2f})"
    ]

    seasonal = 0.0
    if (
        context.upcoming_event is not None
        and context.days_until_event is not None
        and context.days_until_event <= settings.seasonal_proximity_days
    ):
        seasonal = demand.mean * settings.seasonal_buffer_days
        reasoning.append(
            f"+{round(seasonal)} units for upcoming {context.upcoming_event} "
            f"({settings.seasonal_buffer_days} days buffer)"
        )

    supplier = 0.0
    reliability = lead_time.reliability_score
    if reliability is not None and reliability < settings.reliability_threshold:
        supplier = base * settings.low_reliability_buffer
        reasoning.append(
            f"+{round(supplier)} units for low supplier reliability ({reliability * 100:.0f}%)"
        )
    elif lead_time.is_getting_worse:
        supplier = base * settings.worsening_buffer
        reasoning.append(
            f"+{round(supplier)} units for deteriorating lead times "
            f"({lead_time.trend_pct:.0f}% increase)"
        )

    new_item = 0.0
    if context.is_new_item:
        new_item = demand.mean * settings.new_item_buffer_days
        reasoning.append(f"+{round(new_item)} units for new item uncertainty")

    spike = 0.0
    if context.is_spiking and context.spike_multiplier > 1:
        spike = base * (context.spike_multiplier - 1)
        reasoning.append(
            f"+{round(spike)} units for current sales spike ({context.spike_multiplier:.1f}x)"
        )

    adjusted = base + seasonal + supplier + new_item + spike
    minimum = demand.mean * settings.min_days
    maximum = demand.mean * settings.max_days
    bounded = clamp(adjusted, minimum, maximum)
    if bounded > adjusted:
        reasoning.append(
            f"Raised to minimum of {settings.min_days} days of demand ({minimum:.0f} units)"
        )
    elif bounded < adjusted:
        reasoning.append(
            f"Capped at maximum of {settings.max_days} days of demand ({maximum:.0f} units)"
        )

    final = max(0, math.ceil(bounded))
    reasoning.append(f"Final safety stock: {final} units")

    logger.debug(
        "safety_stock.calculated",
        sku=sku,
        importance=importance,
        base=round(base, 2),
        final=final,
    )
    return SafetyStockCalculation(
        sku=sku,
        demand_mean=demand.mean,
        demand_std=demand.std,
        lead_time_days=round(lead_time.days),
        lead_time_std=lead_time_std,
        service_level_target=service_level_for_z(z),
        z_score=z,
        importance=importance,
        safety_stock=math.ceil(base),
        seasonality_adjustment=seasonal,
        supplier_reliability_adjustment=supplier,
        new_item_adjustment=new_item,
        spike_adjustment=spike,
        final_safety_stock=final,
        reasoning=reasoning,
    )


def get_recommended_safety_stock_days(
    importance: ImportanceLevel,
    supplier_reliability: float,
    near_season: bool,
    config: ForecastConfig,
) -> int:
    """Rule-of-thumb safety-stock cover in days.

    21/14/10 days by importance, x1.3 below ``reliability_threshold`` or
    x1.15 below ``watch_reliability``, plus a week near a seasonal peak,
    rounded up.
    """
    settings = config.safety_stock
    days = float(RECOMMENDED_BASE_DAYS[importance])
    if supplier_reliability < settings.reliability_threshold:
        days *= settings.low_reliability_days_factor
    elif supplier_reliability < settings.watch_reliability:
        days *= settings.watch_reliability_days_factor
    if near_season:
        days += settings.near_season_extra_days
    # absorb float noise such as 10 * 1.3
    return math.ceil(round(days, 6))
