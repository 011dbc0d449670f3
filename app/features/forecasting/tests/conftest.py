"""Test fixtures for forecasting module."""

from datetime import date, timedelta

import numpy as np
import pytest

from app.core.config import ForecastConfig
from app.features.deals.schemas import ScheduledDeal
from app.features.seasonality.schemas import SeasonalEvent
from app.shared.schemas import SalesDataPoint


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def sample_time_series() -> np.ndarray:
    """60 days of sequential values (1, 2, 3, ...) for easy verification."""
    return np.array(range(1, 61), dtype=np.float64)


@pytest.fixture
def sample_seasonal_series() -> np.ndarray:
    """28 days (4 weeks) with the weekly pattern [10, 20, ..., 70]."""
    weekly_pattern = np.array([10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0])
    return np.tile(weekly_pattern, 4)


@pytest.fixture
def sample_constant_series() -> np.ndarray:
    """30 days at a constant 100 units."""
    return np.full(30, 100.0, dtype=np.float64)


@pytest.fixture
def as_of() -> date:
    """Forecast origin used by ensemble tests."""
    return date(2024, 6, 30)


@pytest.fixture
def flat_sales(as_of: date) -> list[SalesDataPoint]:
    """60 days at 10 units/day ending on as_of."""
    return [SalesDataPoint(date=as_of - timedelta(days=i), units=10.0) for i in range(60)]


@pytest.fixture
def spiking_sales(as_of: date) -> list[SalesDataPoint]:
    """40 days at 10 units/day then 5 days at 30, ending on as_of."""
    start = as_of - timedelta(days=44)
    return [
        SalesDataPoint(date=start + timedelta(days=i), units=30.0 if i >= 40 else 10.0)
        for i in range(45)
    ]


@pytest.fixture
def july_event() -> SeasonalEvent:
    """Event covering July 1-5 at 2x."""
    return SeasonalEvent(
        id=1,
        name="Summer Kickoff",
        event_type="micro_peak",
        start_month=7,
        start_day=1,
        end_month=7,
        end_day=5,
        base_multiplier=2.0,
    )


@pytest.fixture
def july_deal() -> ScheduledDeal:
    """Lightning deal on July 3-4 at 3x."""
    return ScheduledDeal(
        deal_id="SKU-1-2024-07-03",
        sku="SKU-1",
        deal_type="lightning",
        start_date=date(2024, 7, 3),
        end_date=date(2024, 7, 4),
        expected_sales_lift=3.0,
    )
