"""Test fixtures for spikes module."""

from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.shared.schemas import SalesDataPoint


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def spiking_sales() -> list[SalesDataPoint]:
    """40 days at 10 units/day followed by 5 days at 30 units/day.

    Ends on 2024-06-30; the spike starts 2024-06-26.
    """
    end = date(2024, 6, 30)
    start = end - timedelta(days=44)
    return [
        SalesDataPoint(
            date=start + timedelta(days=i),
            units=30.0 if i >= 40 else 10.0,
        )
        for i in range(45)
    ]


@pytest.fixture
def flat_sales() -> list[SalesDataPoint]:
    """45 days at 10 units/day ending 2024-06-30."""
    end = date(2024, 6, 30)
    return [SalesDataPoint(date=end - timedelta(days=i), units=10.0) for i in range(45)]
