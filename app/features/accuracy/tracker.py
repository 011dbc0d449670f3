"""Forecast-vs-actual tracking and period accuracy reports."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import date

import structlog

from app.features.accuracy.schemas import (
    AccuracyReport,
    CategoryReportLine,
    ForecastAccuracyEntry,
    ModelReportLine,
    SkuAccuracyLine,
)

logger = structlog.get_logger()

DEFAULT_TOLERANCE = 0.2
REPORT_TOP_N = 10
BIAS_REASON_THRESHOLD = 0.1


def percentage_error(predicted: float, actual: float) -> float:
    """|p - a| / a; 0 for a perfect zero forecast, 1 for any forecast of a zero day."""
    if actual > 0:
        return abs(predicted - actual) / actual
    return 0.0 if predicted == 0 else 1.0


def track_forecast_accuracy(
    sku: str,
    forecast_date: date,
    predicted: float,
    actual: float,
    model: str = "ensemble",
    tolerance: float = DEFAULT_TOLERANCE,
) -> ForecastAccuracyEntry:
    """Compare one day's forecast with what actually sold.

    Args:
        sku: SKU identifier.
        forecast_date: The forecasted day.
        predicted: Forecast units.
        actual: Units actually sold.
        model: Model or "ensemble".
        tolerance: Percentage error counted as within tolerance.

    Returns:
        ForecastAccuracyEntry ready to store.
    """
    error = percentage_error(predicted, actual)
    return ForecastAccuracyEntry(
        sku=sku,
        forecast_date=forecast_date,
        model=model,
        predicted_units=predicted,
        actual_units=actual,
        percentage_error=error,
        within_tolerance=error <= tolerance,
    )


def _mean_error(records: Sequence[ForecastAccuracyEntry]) -> float:
    return sum(r.percentage_error for r in records) / len(records) if records else 0.0


def _signed_bias(records: Sequence[ForecastAccuracyEntry]) -> float:
    """Mean of (predicted - actual) / actual over days with sales."""
    signed = [
        (r.predicted_units - r.actual_units) / r.actual_units for r in records if r.actual_units > 0
    ]
    return sum(signed) / len(signed) if signed else 0.0


def _worst_reason(bias: float) -> str:
    if bias > BIAS_REASON_THRESHOLD:
        return "Consistent over-forecasting"
    if bias < -BIAS_REASON_THRESHOLD:
        return "Consistent under-forecasting"
    return "High volatility"


def generate_accuracy_report(
    records: Sequence[ForecastAccuracyEntry],
    period_start: date,
    period_end: date,
    previous_records: Sequence[ForecastAccuracyEntry] | None = None,
    categories: Mapping[str, str] | None = None,
) -> AccuracyReport:
    """Summarize forecast accuracy over a period.

    Only records inside [period_start, period_end] count. The report has the
    overall MAPE, its change against the previous period, per-model and
    per-category MAPE, and the 10 best and worst SKUs. Each worst SKU gets a
    reason from its signed bias.

    Args:
        records: Tracked records.
        period_start: First day of the period.
        period_end: Last day of the period.
        previous_records: Records of the previous period, for improvement.
        categories: Optional SKU -> category map.

    Returns:
        AccuracyReport; an empty period reports zero MAPE.
    """
    in_period = [r for r in records if period_start <= r.forecast_date <= period_end]
    overall = _mean_error(in_period)

    previous_mape = _mean_error(previous_records) if previous_records else None
    improvement = previous_mape - overall if previous_mape is not None and in_period else None

    by_model: dict[str, list[ForecastAccuracyEntry]] = defaultdict(list)
    by_sku: dict[str, list[ForecastAccuracyEntry]] = defaultdict(list)
    by_sku_model: dict[str, dict[str, list[ForecastAccuracyEntry]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for record in in_period:
        by_model[record.model].append(record)
        by_sku[record.sku].append(record)
        by_sku_model[record.sku][record.model].append(record)

    best_model_for: dict[str, list[str]] = defaultdict(list)
    for sku, models in sorted(by_sku_model.items()):
        best = min(models, key=lambda m: (_mean_error(models[m]), m))
        best_model_for[best].append(sku)

    model_lines = [
        ModelReportLine(
            model=model,
            mape=_mean_error(rows),
            sample_size=len(rows),
            sku_count=len({r.sku for r in rows}),
            best_for_skus=best_model_for.get(model, []),
        )
        for model, rows in sorted(by_model.items())
    ]

    category_lines: list[CategoryReportLine] = []
    if categories:
        by_category: dict[str, list[ForecastAccuracyEntry]] = defaultdict(list)
        for record in in_period:
            category = categories.get(record.sku)
            if category is not None:
                by_category[category].append(record)
        category_lines = [
            CategoryReportLine(
                category=category,
                mape=_mean_error(rows),
                sku_count=len({r.sku for r in rows}),
            )
            for category, rows in sorted(by_category.items())
        ]

    sku_lines = sorted(
        (
            SkuAccuracyLine(
                sku=sku, mape=_mean_error(rows), bias=_signed_bias(rows), sample_size=len(rows)
            )
            for sku, rows in by_sku.items()
        ),
        key=lambda line: (line.mape, line.sku),
    )
    best = sku_lines[:REPORT_TOP_N]
    worst = [
        line.model_copy(update={"reason": _worst_reason(line.bias)})
        for line in reversed(sku_lines[-REPORT_TOP_N:])
    ]

    logger.info(
        "accuracy.report_generated",
        period_start=period_start.isoformat(),
        period_end=period_end.isoformat(),
        records=len(in_period),
        overall_mape=round(overall, 4),
    )
    return AccuracyReport(
        period_start=period_start,
        period_end=period_end,
        overall_mape=overall,
        previous_mape=previous_mape,
        improvement=improvement,
        total_records=len(in_period),
        by_model=model_lines,
        by_category=category_lines,
        best_skus=best,
        worst_skus=worst,
    )


def recent_sku_mape(
    records: Sequence[ForecastAccuracyEntry], sku: str, as_of: date, days: int = 14
) -> float | None:
    """Mean percentage error of a SKU over the last ``days`` days, None without records."""
    recent = [
        r
        for r in records
        if r.sku == sku and 0 <= (as_of - r.forecast_date).days < days
    ]
    return _mean_error(recent) if recent else None
