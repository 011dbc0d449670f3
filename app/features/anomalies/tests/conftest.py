"""Test fixtures for anomalies module."""

from collections.abc import Callable
from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.shared.schemas import SalesDataPoint


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def as_of() -> date:
    """Detection date."""
    return date(2024, 6, 30)


@pytest.fixture
def make_sales(as_of: date) -> Callable[[float, float], list[SalesDataPoint]]:
    """60 daily points: ``recent`` units/day for the last 30 days, ``older`` before."""

    def _make(recent: float, older: float) -> list[SalesDataPoint]:
        return [
            SalesDataPoint(date=as_of - timedelta(days=i), units=recent if i < 30 else older)
            for i in range(60)
        ]

    return _make


@pytest.fixture
def make_record(as_of: date) -> Callable[..., ForecastAccuracyEntry]:
    """Accuracy record ``days_ago`` days before as_of."""

    def _make(
        sku: str, predicted: float, actual: float, days_ago: int = 1, error: float | None = None
    ) -> ForecastAccuracyEntry:
        pct = error if error is not None else abs(actual - predicted) / max(actual, 1.0)
        return ForecastAccuracyEntry(
            sku=sku,
            forecast_date=as_of - timedelta(days=days_ago),
            predicted_units=predicted,
            actual_units=actual,
            percentage_error=pct,
            within_tolerance=pct <= 0.2,
        )

    return _make
