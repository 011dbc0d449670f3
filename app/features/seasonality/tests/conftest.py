"""Test fixtures for seasonality module."""

from collections.abc import Callable
from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.seasonality.schemas import SeasonalEvent
from app.shared.schemas import SalesDataPoint

SeriesFactory = Callable[[date, int, Callable[[date], float]], list[SalesDataPoint]]


def build_series(
    start: date, days: int, units: Callable[[date], float]
) -> list[SalesDataPoint]:
    """Build a daily series whose units are a function of the date."""
    return [
        SalesDataPoint(date=start + timedelta(days=i), units=units(start + timedelta(days=i)))
        for i in range(days)
    ]


@pytest.fixture
def make_series() -> SeriesFactory:
    """Factory for daily series."""
    return build_series


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def holiday_event() -> SeasonalEvent:
    """Black Friday through Christmas window."""
    return SeasonalEvent(
        id=6,
        name="Black Friday through Christmas",
        event_type="major_peak",
        start_month=11,
        start_day=15,
        end_month=12,
        end_day=24,
        base_multiplier=4.0,
    )


@pytest.fixture
def wrapping_event() -> SeasonalEvent:
    """Window crossing the year boundary."""
    return SeasonalEvent(
        id=7,
        name="New Year Clearance",
        start_month=12,
        start_day=20,
        end_month=1,
        end_day=5,
        base_multiplier=1.8,
    )


@pytest.fixture
def three_year_holiday_sales() -> list[SalesDataPoint]:
    """Three full years: 35 units/day inside Nov 15 - Dec 24, 10 outside."""

    def units(d: date) -> float:
        in_window = (d.month == 11 and d.day >= 15) or (d.month == 12 and d.day <= 24)
        return 35.0 if in_window else 10.0

    start = date(2021, 1, 1)
    return build_series(start, (date(2023, 12, 31) - start).days + 1, units)
