"""Event multiplier learning and undeclared pattern mining.

Learning is recomputed from the full eligible history on every run, so
rerunning with identical input yields identical multipliers.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.seasonality.schemas import (
    DetectedPattern,
    LearnedMultiplier,
    SeasonalEvent,
    SeasonalEventCreate,
)
from app.features.seasonality.windows import is_date_in_event
from app.shared.schemas import SalesDataPoint
from app.shared.utils import fill_missing_days

logger = structlog.get_logger()


def recency_weights(n_years: int, recent_weight: float) -> list[float]:
    """Weights for years ordered newest first.

    The newest year gets ``recent_weight``; the year at rank i >= 1 gets
    ``(1 - recent_weight) / i``.
    """
    older = 1.0 - recent_weight
    return [recent_weight if i == 0 else older / i for i in range(n_years)]


def learn_seasonal_multipliers(
    sku: str | None,
    sales: Sequence[SalesDataPoint],
    events: Sequence[SeasonalEvent],
    config: ForecastConfig,
) -> list[LearnedMultiplier]:
    """Learn a multiplier per active event from multi-year history.

    In-window days are grouped by calendar year, so a window that crosses
    New Year contributes to both years. Days without a record count as zero
    units.

    Args:
        sku: SKU the history belongs to, or None for a global learn.
        sales: Daily sales history.
        events: Seasonal event catalog.
        config: Engine thresholds.

    Returns:
        One LearnedMultiplier per active event with in-window sales.
        Empty when the history is shorter than a year.
    """
    settings = config.seasonality
    daily = fill_missing_days(sales)
    if len(daily) < settings.min_yearly_points:
        logger.info(
            "seasonality.learn_skipped",
            sku=sku,
            n_days=len(daily),
            min_points=settings.min_yearly_points,
        )
        return []

    active = [e for e in events if e.is_active]

    outside = [p.units for p in daily if not any(is_date_in_event(p.date, e) for e in active)]
    baseline = float(np.mean(outside)) if outside else 0.0
    if baseline <= 0:
        baseline = 1.0

    results: list[LearnedMultiplier] = []
    for event in active:
        by_year: dict[int, list[float]] = defaultdict(list)
        for point in daily:
            if is_date_in_event(point.date, event):
                by_year[point.date.year].append(point.units)
        if not by_year:
            continue

        years = sorted(by_year, reverse=True)
        yearly_averages = {year: float(np.mean(by_year[year])) for year in years}
        weights = recency_weights(len(years), settings.recent_year_weight)
        weighted_avg = sum(
            w * yearly_averages[year] for w, year in zip(weights, years, strict=True)
        ) / sum(weights)

        if weighted_avg <= 0:
            logger.warning("seasonality.learn_zero_window_sales", sku=sku, event=event.name)
            continue

        results.append(
            LearnedMultiplier(
                event_id=event.id,
                event_name=event.name,
                sku=sku,
                learned_multiplier=weighted_avg / baseline,
                baseline=baseline,
                years_seen=len(years),
                yearly_averages=yearly_averages,
                confidence=min(1.0, len(years) / 3),
            )
        )

    logger.info(
        "seasonality.learn_completed",
        sku=sku,
        baseline=round(baseline, 4),
        events_learned=len(results),
    )
    return results


def apply_learned_multiplier(event: SeasonalEvent, learned: LearnedMultiplier) -> SeasonalEvent:
    """Return the event with a learned value folded in.

    Global learns set ``learned_multiplier``; SKU learns set the SKU override.
    The base multiplier is never touched.
    """
    if learned.sku is None:
        return event.model_copy(update={"learned_multiplier": learned.learned_multiplier})
    return update_sku_event_multiplier(event, learned.sku, learned.learned_multiplier)


def update_sku_event_multiplier(event: SeasonalEvent, sku: str, multiplier: float) -> SeasonalEvent:
    """Return a copy of the event with one SKU override set.

    Raises:
        ValueError: If the multiplier is not positive.
    """
    if multiplier <= 0:
        raise ValueError(f"SKU multiplier must be > 0, got {multiplier}")
    overrides = {**event.sku_multipliers, sku: multiplier}
    return event.model_copy(update={"sku_multipliers": overrides})


def create_seasonal_event(payload: SeasonalEventCreate) -> SeasonalEvent:
    """Build an unsaved event from a create payload."""
    return SeasonalEvent(**payload.model_dump())


# =============================================================================
# Undeclared Pattern Mining
# =============================================================================


@dataclass
class _SpikeRun:
    year: int
    start: date
    end: date
    multiplier: float


def _find_spike_runs(
    year: int, points: list[SalesDataPoint], min_multiplier: float, min_run: int
) -> list[_SpikeRun]:
    """Runs of consecutive spike days within one calendar year."""
    year_avg = float(np.mean([p.units for p in points]))
    if year_avg <= 0:
        return []

    runs: list[_SpikeRun] = []
    current: list[SalesDataPoint] = []

    def close() -> None:
        if len(current) >= min_run:
            run_avg = float(np.mean([p.units for p in current]))
            runs.append(_SpikeRun(year, current[0].date, current[-1].date, run_avg / year_avg))

    for point in points:
        if point.units / year_avg >= min_multiplier:
            current.append(point)
        else:
            close()
            current = []
    close()
    return runs


def _pattern_name(start_month: int, start_day: int, end_month: int, end_day: int) -> str:
    start = calendar.month_abbr[start_month]
    if start_month == end_month:
        return f"{start} {start_day}-{end_day} Spike"
    return f"{start} {start_day}-{calendar.month_abbr[end_month]} {end_day} Spike"


def detect_new_seasonal_patterns(
    sales: Sequence[SalesDataPoint],
    config: ForecastConfig,
    min_spike_multiplier: float | None = None,
    min_recurrence: int | None = None,
    min_run_days: int = 3,
) -> list[DetectedPattern]:
    """Find recurring spike windows that no declared event covers.

    Output is advisory: nothing here creates or activates an event.

    Args:
        sales: Daily sales history, at least two years.
        config: Engine thresholds.
        min_spike_multiplier: Day/year-average ratio that marks a spike day.
        min_recurrence: Distinct years a window must recur in.
        min_run_days: Minimum consecutive spike days.

    Returns:
        Detected patterns sorted by start date.
    """
    settings = config.seasonality
    threshold = settings.spike_multiplier if min_spike_multiplier is None else min_spike_multiplier
    recurrence = settings.min_recurrence if min_recurrence is None else min_recurrence

    daily = fill_missing_days(sales)
    if len(daily) < 2 * settings.min_yearly_points:
        logger.info("seasonality.pattern_scan_skipped", n_days=len(daily))
        return []

    by_year: dict[int, list[SalesDataPoint]] = defaultdict(list)
    for point in daily:
        by_year[point.date.year].append(point)

    groups: dict[tuple[int, int], list[_SpikeRun]] = defaultdict(list)
    for year, points in by_year.items():
        for run in _find_spike_runs(year, points, threshold, min_run_days):
            groups[(run.start.month, run.start.day // 7)].append(run)

    patterns: list[DetectedPattern] = []
    for runs in groups.values():
        years_seen = len({r.year for r in runs})
        if years_seen < recurrence:
            continue
        first = runs[0]
        start_month, end_month = first.start.month, first.end.month
        start_day = round(float(np.mean([r.start.day for r in runs])))
        end_day = round(float(np.mean([r.end.day for r in runs])))
        start_day = max(1, min(start_day, calendar.monthrange(2024, start_month)[1]))
        end_day = max(1, min(end_day, calendar.monthrange(2024, end_month)[1]))
        patterns.append(
            DetectedPattern(
                suggested_name=_pattern_name(start_month, start_day, end_month, end_day),
                start_month=start_month,
                start_day=start_day,
                end_month=end_month,
                end_day=end_day,
                avg_multiplier=float(np.mean([r.multiplier for r in runs])),
                years_seen=years_seen,
                confidence=min(1.0, years_seen / 3),
            )
        )

    patterns.sort(key=lambda p: (p.start_month, p.start_day))
    logger.info("seasonality.pattern_scan_completed", patterns_found=len(patterns))
    return patterns
