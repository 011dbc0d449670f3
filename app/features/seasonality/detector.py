"""Seasonality detection from a SKU's sales history.

Patterns are multiplicative: bucket average / overall average. Confidence
combines pattern stability (1 - coefficient of variation across buckets)
with sample coverage.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.seasonality.schemas import (
    DetectedSeasonality,
    SeasonalEvent,
    SeasonalityMultiplier,
    SeasonalityPattern,
    UpcomingEvent,
)
from app.features.seasonality.windows import days_until_event, is_date_in_event
from app.shared.schemas import SalesDataPoint
from app.shared.utils import coefficient_of_variation, fill_missing_days, safe_ratio

logger = structlog.get_logger()


def _bucket_pattern(
    sales: Sequence[SalesDataPoint],
    key: Callable[[date], int],
    buckets: range,
    full_confidence_samples: int,
    field: str,
) -> list[SeasonalityPattern]:
    """Compute one multiplier per bucket.

    Args:
        sales: Sales history.
        key: Maps a date to its bucket.
        buckets: Bucket labels, in output order.
        full_confidence_samples: Sample count giving full coverage credit.
        field: "month" or "day_of_week".

    Returns:
        One pattern per bucket; empty buckets get multiplier 1.0, confidence 0.
    """
    overall = float(np.mean([p.units for p in sales])) if sales else 0.0
    grouped: dict[int, list[float]] = {b: [] for b in buckets}
    for point in sales:
        grouped[key(point.date)].append(point.units)

    patterns: list[SeasonalityPattern] = []
    for bucket in buckets:
        values = grouped[bucket]
        if not values:
            patterns.append(
                SeasonalityPattern(**{field: bucket}, multiplier=1.0, confidence=0.0, sample_size=0)
            )
            continue
        avg = float(np.mean(values))
        cv = coefficient_of_variation(values)
        confidence = max(0.0, 1.0 - cv) * min(1.0, len(values) / full_confidence_samples)
        patterns.append(
            SeasonalityPattern(
                **{field: bucket},
                multiplier=safe_ratio(avg, overall),
                confidence=min(1.0, confidence),
                sample_size=len(values),
            )
        )
    return patterns


def detect_yearly_pattern(
    sales: Sequence[SalesDataPoint], config: ForecastConfig
) -> list[SeasonalityPattern]:
    """Monthly multipliers; empty below the minimum yearly history.

    History is measured in calendar days; days without a record count as
    zero units.
    """
    settings = config.seasonality
    daily = fill_missing_days(sales)
    if len(daily) < settings.min_yearly_points:
        return []
    return _bucket_pattern(
        daily,
        key=lambda d: d.month,
        buckets=range(1, 13),
        full_confidence_samples=settings.yearly_full_confidence_samples,
        field="month",
    )


def detect_weekly_pattern(
    sales: Sequence[SalesDataPoint], config: ForecastConfig
) -> list[SeasonalityPattern]:
    """Day-of-week multipliers (0=Monday); empty with no history.

    Days without a record count as zero units.
    """
    daily = fill_missing_days(sales)
    if not daily:
        return []
    return _bucket_pattern(
        daily,
        key=lambda d: d.weekday(),
        buckets=range(7),
        full_confidence_samples=config.seasonality.weekly_full_confidence_samples,
        field="day_of_week",
    )


def effective_event_multiplier(
    event: SeasonalEvent, sku: str | None, config: ForecastConfig
) -> tuple[float, str]:
    """Resolve the multiplier an event applies to a SKU.

    Precedence: per-SKU override, then blend of base and learned, then base.

    Returns:
        Tuple of (multiplier, source).
    """
    if sku is not None and sku in event.sku_multipliers:
        return event.sku_multipliers[sku], "sku_specific"
    if event.learned_multiplier is not None:
        blend = config.seasonality.learned_blend
        return (1 - blend) * event.base_multiplier + blend * event.learned_multiplier, "learned"
    return event.base_multiplier, "base"


def get_upcoming_events(
    events: Sequence[SeasonalEvent],
    sku: str | None,
    as_of: date,
    config: ForecastConfig,
    horizon_days: int | None = None,
) -> list[UpcomingEvent]:
    """Active events starting within the horizon, soonest first."""
    horizon = config.seasonality.event_horizon_days if horizon_days is None else horizon_days
    upcoming: list[UpcomingEvent] = []
    for event in events:
        if not event.is_active:
            continue
        days_until = days_until_event(event, as_of)
        if days_until > horizon:
            continue
        multiplier, source = effective_event_multiplier(event, sku, config)
        upcoming.append(
            UpcomingEvent(
                event=event,
                days_until=days_until,
                multiplier=multiplier,
                source=source,  # type: ignore[arg-type]
            )
        )
    upcoming.sort(key=lambda u: (u.days_until, u.event.name))
    return upcoming


def get_seasonality_multiplier_for_date(
    d: date,
    sku: str | None,
    events: Sequence[SeasonalEvent],
    config: ForecastConfig,
) -> SeasonalityMultiplier:
    """Multiplier for one forecast date from the first active matching event."""
    for event in events:
        if event.is_active and is_date_in_event(d, event):
            multiplier, source = effective_event_multiplier(event, sku, config)
            return SeasonalityMultiplier(
                multiplier=multiplier,
                event_name=event.name,
                source=source,  # type: ignore[arg-type]
            )
    return SeasonalityMultiplier(multiplier=1.0, event_name=None, source="none")


def detect_seasonality(
    sku: str,
    sales: Sequence[SalesDataPoint],
    events: Sequence[SeasonalEvent],
    config: ForecastConfig,
    as_of: date,
) -> DetectedSeasonality:
    """Build the seasonality profile of a SKU.

    Yearly patterns need a full year of days; gaps in the history are
    zero-sales days. Weekly patterns and the
    upcoming-event lookup run regardless of history length.

    Args:
        sku: SKU identifier.
        sales: Daily sales history.
        events: Seasonal event catalog.
        config: Engine thresholds.
        as_of: Reference date for the event lookup.

    Returns:
        DetectedSeasonality for the SKU.
    """
    settings = config.seasonality
    daily = fill_missing_days(sales)
    yearly = detect_yearly_pattern(daily, config)
    weekly = detect_weekly_pattern(daily, config)

    has_seasonality = any(
        abs(p.multiplier - 1) > settings.monthly_deviation for p in yearly
    ) or any(abs(p.multiplier - 1) > settings.weekly_deviation for p in weekly)

    upcoming = get_upcoming_events(events, sku, as_of, config)

    logger.info(
        "seasonality.detect_completed",
        sku=sku,
        n_days=len(daily),
        has_seasonality=has_seasonality,
        yearly_buckets=len(yearly),
        upcoming_events=len(upcoming),
    )

    return DetectedSeasonality(
        sku=sku,
        has_seasonality=has_seasonality,
        yearly_pattern=yearly,
        weekly_pattern=weekly,
        upcoming_events=upcoming,
    )
