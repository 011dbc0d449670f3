"""Analog-SKU matching and forecasts for items without sales history.

A new SKU borrows the launch velocity of the most similar existing SKU,
scored on category, price point, brand and supplier. The forecast is then
watched closely and blended toward observed sales once the first week is in.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta

import structlog

from app.core.config import ForecastConfig
from app.features.new_items.schemas import (
    AnalogMatchCriteria,
    AnalogPerformance,
    AnalogSkuMatch,
    CandidateProduct,
    CheckFrequency,
    NewItemForecast,
    ProductProfile,
    RecalibrationResult,
    WatchStatus,
)
from app.features.seasonality.detector import get_seasonality_multiplier_for_date
from app.features.seasonality.schemas import SeasonalEvent

logger = structlog.get_logger()

NO_ANALOG_VELOCITY = 1.0
NO_ANALOG_CONFIDENCE = 0.3
ANALOG_CONFIDENCE_FACTOR = 0.8
MAX_RECALIBRATED_CONFIDENCE = 0.9
CRITICAL_CHANGE_PCT = 50.0


def days_since_launch(item: ProductProfile, as_of: date) -> int:
    """Days from first sale to as_of; 0 when the SKU has not sold yet."""
    if item.launch_date is None:
        return 0
    return max(0, (as_of - item.launch_date).days)


def _score_candidate(
    item: ProductProfile, candidate: CandidateProduct, config: ForecastConfig
) -> tuple[float, list[str], AnalogMatchCriteria]:
    settings = config.new_item
    score = 0.0
    reasons: list[str] = []
    criteria = AnalogMatchCriteria()

    if item.category is not None and candidate.category == item.category:
        score += settings.category_weight
        reasons.append("Same category")
        criteria.category = True

    price_diff = abs(candidate.price - item.price) / item.price
    if price_diff <= settings.price_tolerance:
        score += settings.price_weight
        reasons.append("Similar price point")
        criteria.price_range = True
    elif price_diff <= settings.price_tolerance * 2:
        score += settings.price_weight * 0.5
        reasons.append("Comparable price range")

    if item.brand is not None and candidate.brand == item.brand:
        score += settings.brand_weight
        reasons.append("Same brand")
        criteria.brand = True

    if item.supplier_id is not None and candidate.supplier_id == item.supplier_id:
        score += settings.supplier_weight
        reasons.append("Same supplier")
        criteria.supplier = True

    return round(score, 6), reasons, criteria


def find_analog_sku(
    item: ProductProfile,
    candidates: Sequence[CandidateProduct],
    config: ForecastConfig,
) -> AnalogSkuMatch | None:
    """Find the existing SKU most similar to a new item.

    Candidates without velocity history, and the item itself, are skipped.
    Ties on score go to the faster-selling candidate.

    Args:
        item: The new SKU.
        candidates: Existing SKUs with velocities.
        config: Engine thresholds (weights, tolerance, minimum score).

    Returns:
        The best match scoring at least ``min_match_score``, else None.
    """
    best: tuple[float, float, CandidateProduct, list[str], AnalogMatchCriteria] | None = None
    for candidate in candidates:
        if candidate.sku == item.sku or candidate.velocity_30d is None:
            continue
        score, reasons, criteria = _score_candidate(item, candidate, config)
        key = (score, candidate.velocity_30d)
        if best is None or key > (best[0], best[1]):
            best = (score, candidate.velocity_30d, candidate, reasons, criteria)

    if best is None or best[0] < config.new_item.min_match_score:
        logger.info(
            "new_items.no_analog_found",
            sku=item.sku,
            candidates=len(candidates),
            best_score=best[0] if best else None,
        )
        return None

    score, velocity_30d, candidate, reasons, criteria = best
    return AnalogSkuMatch(
        analog_sku=candidate.sku,
        match_score=score,
        match_reasons=reasons,
        match_criteria=criteria,
        analog_performance=AnalogPerformance(
            avg_velocity_30d=velocity_30d,
            avg_velocity_90d=candidate.velocity_90d or 0.0,
            first_month_velocity=candidate.first_month_velocity or velocity_30d,
        ),
    )


def _watch_cadence(
    is_new: bool, days: int, config: ForecastConfig
) -> tuple[WatchStatus, CheckFrequency, int]:
    settings = config.new_item
    if is_new and days <= settings.daily_check_days:
        return "high_watch", "daily", 1
    if is_new and days <= settings.tri_daily_check_days:
        return "high_watch", "every_3_days", 3
    return "normal", "weekly", 7


def forecast_new_item(
    item: ProductProfile,
    candidates: Sequence[CandidateProduct],
    config: ForecastConfig,
    as_of: date,
    actual_velocity: float | None = None,
    events: Sequence[SeasonalEvent] = (),
) -> tuple[NewItemForecast, AnalogSkuMatch | None]:
    """Forecast velocity for a recently launched SKU.

    Args:
        item: The new SKU.
        candidates: Existing SKUs to match against.
        config: Engine thresholds.
        as_of: Forecast date.
        actual_velocity: Observed units/day over the last week, if any.
        events: Event catalog for the seasonal multiplier on as_of.

    Returns:
        Tuple of (forecast, analog). Without a usable analog the forecast
        assumes 1 unit/day at 0.3 confidence.
    """
    settings = config.new_item
    days = days_since_launch(item, as_of)
    is_new = days <= settings.new_item_days
    watch, frequency, check_in = _watch_cadence(is_new, days, config)

    analog = find_analog_sku(item, candidates, config)
    if analog is not None:
        base_velocity = analog.analog_performance.first_month_velocity or NO_ANALOG_VELOCITY
        confidence = analog.match_score * ANALOG_CONFIDENCE_FACTOR
    else:
        base_velocity = NO_ANALOG_VELOCITY
        confidence = NO_ANALOG_CONFIDENCE

    seasonal = get_seasonality_multiplier_for_date(as_of, item.sku, events, config)

    deviation: float | None = None
    needs_recalibration = False
    if days > settings.daily_check_days and actual_velocity:
        deviation = (actual_velocity - base_velocity) / base_velocity * 100
        needs_recalibration = (
            days <= settings.recalibration_window_days
            and abs(deviation) > settings.recalibration_threshold_pct
        )

    forecast = NewItemForecast(
        sku=item.sku,
        is_new_item=is_new,
        days_since_launch=days,
        watch_status=watch,
        analog_sku=analog.analog_sku if analog else None,
        analog_match_score=analog.match_score if analog else None,
        base_velocity=base_velocity,
        seasonal_multiplier=seasonal.multiplier,
        adjusted_velocity=base_velocity * seasonal.multiplier,
        confidence=confidence,
        next_check_date=as_of + timedelta(days=check_in),
        check_frequency=frequency,
        actual_vs_forecasted=deviation,
        needs_recalibration=needs_recalibration,
    )
    logger.info(
        "new_items.forecast_completed",
        sku=item.sku,
        days_since_launch=days,
        analog_sku=forecast.analog_sku,
        base_velocity=round(base_velocity, 3),
        needs_recalibration=needs_recalibration,
    )
    return forecast, analog


def recalibrate_new_item(
    forecast: NewItemForecast,
    actual_velocity: float,
    config: ForecastConfig,
    force: bool = False,
) -> RecalibrationResult:
    """Blend the forecast velocity with observed sales.

    Outside +/-30% of the forecast the actual gets 70% weight, otherwise an
    even blend. The watch status turns critical when velocity moves by more
    than 50%, and confidence rises by 0.1 up to 0.9.
    """
    previous = forecast.base_velocity
    if not (forecast.needs_recalibration or force):
        return RecalibrationResult(
            sku=forecast.sku,
            previous_velocity=previous,
            new_velocity=previous,
            change_percent=0.0,
            reason="No recalibration needed",
            recalibrated=False,
            forecast=forecast,
        )

    band = config.new_item.recalibration_threshold_pct / 100
    if actual_velocity > previous * (1 + band):
        new_velocity = previous * 0.3 + actual_velocity * 0.7
        reason = (
            f"Outperforming analog by {round((actual_velocity - previous) / previous * 100)}%"
            " - adjusting forecast upward"
        )
    elif actual_velocity < previous * (1 - band):
        new_velocity = previous * 0.3 + actual_velocity * 0.7
        reason = (
            f"Underperforming analog by {round((previous - actual_velocity) / previous * 100)}%"
            " - adjusting forecast downward"
        )
    else:
        new_velocity = previous * 0.5 + actual_velocity * 0.5
        reason = "Performance within expected range - minor adjustment"

    change_pct = (new_velocity - previous) / previous * 100
    watch: WatchStatus = "critical" if abs(change_pct) > CRITICAL_CHANGE_PCT else "high_watch"
    updated = forecast.model_copy(
        update={
            "base_velocity": max(new_velocity, 1e-6),
            "adjusted_velocity": new_velocity * forecast.seasonal_multiplier,
            "confidence": min(MAX_RECALIBRATED_CONFIDENCE, forecast.confidence + 0.1),
            "watch_status": watch,
            "actual_vs_forecasted": (actual_velocity - previous) / previous * 100,
            "needs_recalibration": False,
        }
    )
    logger.info(
        "new_items.recalibrated",
        sku=forecast.sku,
        previous_velocity=round(previous, 3),
        new_velocity=round(new_velocity, 3),
        watch_status=watch,
    )
    return RecalibrationResult(
        sku=forecast.sku,
        previous_velocity=previous,
        new_velocity=new_velocity,
        change_percent=change_pct,
        reason=reason,
        recalibrated=True,
        forecast=updated,
    )
