"""Shared numeric helpers for sales series."""

import math
from collections.abc import Sequence
from datetime import timedelta
from typing import Any

import numpy as np

from app.shared.schemas import SalesDataPoint


def fill_missing_days(sales: Sequence[SalesDataPoint]) -> list[SalesDataPoint]:
    """Return a gap-free daily series sorted by date.

    Missing days are inserted with zero units. Duplicate dates are summed.

    Args:
        sales: Sales observations in any order.

    Returns:
        One point per calendar day between the first and last observation.
    """
    if not sales:
        return []

    by_day: dict[Any, float] = {}
    for point in sales:
        by_day[point.date] = by_day.get(point.date, 0.0) + point.units

    start = min(by_day)
    end = max(by_day)
    filled: list[SalesDataPoint] = []
    current = start
    while current <= end:
        filled.append(SalesDataPoint(date=current, units=by_day.get(current, 0.0)))
        current += timedelta(days=1)
    return filled


def units_array(sales: Sequence[SalesDataPoint]) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
    """Extract units as a float64 array."""
    return np.array([p.units for p in sales], dtype=np.float64)


def safe_ratio(numerator: float, denominator: float, default: float = 1.0) -> float:
    """Divide, falling back to a neutral value for a zero denominator."""
    if denominator == 0 or math.isnan(denominator):
        return default
    return numerator / denominator


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population std / mean, or 1.0 when the mean is zero or no values."""
    if len(values) == 0:
        return 1.0
    arr = np.asarray(values, dtype=np.float64)
    mean = float(np.mean(arr))
    if mean == 0:
        return 1.0
    return float(np.std(arr)) / mean


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def trailing_velocity(
    sales: Sequence[SalesDataPoint], as_of: Any = None, days: int = 30  # noqa: ANN401
) -> float:
    """Average daily units over the ``days`` days ending on as_of (inclusive).

    Missing days count as zero. When as_of is None the last observed date is used.
    """
    if not sales or days <= 0:
        return 0.0
    end = as_of if as_of is not None else max(p.date for p in sales)
    start = end - timedelta(days=days - 1)
    total = sum(p.units for p in sales if start <= p.date <= end)
    return total / days
