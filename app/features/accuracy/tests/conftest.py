"""Test fixtures for accuracy module."""

from collections.abc import Callable
from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.accuracy.schemas import ForecastAccuracyEntry, ModelAccuracy
from app.features.accuracy.tracker import track_forecast_accuracy
from app.shared.schemas import SalesDataPoint


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def weekly_sales() -> list[SalesDataPoint]:
    """120 days from 2024-01-01: 10 units on weekdays, 15 on weekends."""
    start = date(2024, 1, 1)
    return [
        SalesDataPoint(
            date=start + timedelta(days=i),
            units=15.0 if (start + timedelta(days=i)).weekday() >= 5 else 10.0,
        )
        for i in range(120)
    ]


@pytest.fixture
def short_sales() -> list[SalesDataPoint]:
    """45 days at 10 units/day, too short to backtest."""
    start = date(2024, 1, 1)
    return [SalesDataPoint(date=start + timedelta(days=i), units=10.0) for i in range(45)]


@pytest.fixture
def make_accuracy() -> Callable[..., ModelAccuracy]:
    """Build a ModelAccuracy with only the MAPE that matters."""

    def _make(model: str, mape: float) -> ModelAccuracy:
        return ModelAccuracy(
            model=model,  # type: ignore[arg-type]
            mape=mape,
            rmse=0.0,
            mae=0.0,
            bias=0.0,
            hit_rate=1.0,
            sample_size=30,
        )

    return _make


@pytest.fixture
def june_records() -> list[ForecastAccuracyEntry]:
    """Ensemble records for three SKUs in early June plus one in July.

    SKU-A is off by 10% both ways, SKU-B over-forecasts by 50% and SKU-C
    under-forecasts by 50%.
    """
    pairs = {
        "SKU-A": [(11.0, 10.0), (9.0, 10.0)],
        "SKU-B": [(15.0, 10.0), (15.0, 10.0)],
        "SKU-C": [(5.0, 10.0), (5.0, 10.0)],
    }
    records = [
        track_forecast_accuracy(sku, date(2024, 6, 1 + i), predicted, actual)
        for sku, values in pairs.items()
        for i, (predicted, actual) in enumerate(values)
    ]
    records.append(track_forecast_accuracy("SKU-A", date(2024, 7, 1), 50.0, 10.0))
    return records
