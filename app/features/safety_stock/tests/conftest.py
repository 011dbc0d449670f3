"""Test fixtures for safety-stock module."""

from datetime import date

import pytest

from app.core.config import ForecastConfig
from app.features.safety_stock.schemas import DemandStats, LeadTimeProfile
from app.features.seasonality.schemas import SeasonalEvent


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def best_seller_demand() -> DemandStats:
    """10 units/day with a std of 5."""
    return DemandStats(mean=10.0, std=5.0)


@pytest.fixture
def thirty_day_lead_time() -> LeadTimeProfile:
    """30-day lead time with the default 20% std."""
    return LeadTimeProfile(days=30.0)


@pytest.fixture
def as_of() -> date:
    """Twenty days before Prime Day."""
    return date(2024, 6, 20)


@pytest.fixture
def peak_events() -> list[SeasonalEvent]:
    """A peak 20 days out, a custom event 5 days out and a peak 60 days out."""
    return [
        SeasonalEvent(
            name="Prime Day",
            event_type="major_peak",
            start_month=7,
            start_day=10,
            end_month=7,
            end_day=17,
            base_multiplier=3.0,
        ),
        SeasonalEvent(
            name="Store Anniversary",
            event_type="custom",
            start_month=6,
            start_day=25,
            end_month=6,
            end_day=26,
            base_multiplier=1.2,
        ),
        SeasonalEvent(
            name="Back to School",
            event_type="micro_peak",
            start_month=8,
            start_day=19,
            end_month=8,
            end_day=31,
            base_multiplier=1.5,
        ),
    ]
