"""Test fixtures for deals module."""

from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.deals.schemas import DealHistoryEntry, ScheduledDeal
from app.shared.schemas import SalesDataPoint


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def lightning_history() -> list[DealHistoryEntry]:
    """Two past lightning deals with lifts 2.0 and 4.0."""
    return [
        DealHistoryEntry(
            deal_type="lightning",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 2),
            sales_lift=2.0,
        ),
        DealHistoryEntry(
            deal_type="lightning",
            start_date=date(2024, 5, 1),
            end_date=date(2024, 5, 2),
            sales_lift=4.0,
        ),
        DealHistoryEntry(
            deal_type="coupon",
            start_date=date(2024, 6, 1),
            end_date=date(2024, 6, 8),
            sales_lift=1.2,
        ),
    ]


@pytest.fixture
def flat_sales() -> list[SalesDataPoint]:
    """60 days at 10 units/day ending 2024-08-31."""
    end = date(2024, 8, 31)
    return [SalesDataPoint(date=end - timedelta(days=i), units=10.0) for i in range(60)]


@pytest.fixture
def coupon_deal() -> ScheduledDeal:
    """Coupon running Sep 10-16 with 1.5x lift."""
    return ScheduledDeal(
        deal_id="SKU-1-2024-09-10",
        sku="SKU-1",
        deal_type="coupon",
        start_date=date(2024, 9, 10),
        end_date=date(2024, 9, 16),
        expected_sales_lift=1.5,
    )
