"""Test fixtures for alerts module."""

from collections.abc import Callable
from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.alerts.schemas import SkuStockStatus
from app.features.anomalies.schemas import AnomalyEvent
from app.features.seasonality.schemas import SeasonalEvent
from app.shared.schemas import InventoryPosition


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def as_of() -> date:
    """Alert date."""
    return date(2024, 6, 20)


@pytest.fixture
def stocked_position() -> InventoryPosition:
    """100 at FBA, 50 inbound, 300 in the warehouse."""
    return InventoryPosition(fba_available=100, fba_inbound=50, warehouse_available=300)


@pytest.fixture
def make_status() -> Callable[..., SkuStockStatus]:
    """Stock status with everything held in the warehouse."""

    def _make(sku: str, velocity: float, total: float, lead_time_days: int = 30) -> SkuStockStatus:
        return SkuStockStatus(
            sku=sku,
            position=InventoryPosition(warehouse_available=total),
            velocity=velocity,
            lead_time_days=lead_time_days,
        )

    return _make


@pytest.fixture
def make_record(as_of: date) -> Callable[..., ForecastAccuracyEntry]:
    """Accuracy record with a given percentage error."""

    def _make(sku: str, error: float, days_ago: int = 1) -> ForecastAccuracyEntry:
        return ForecastAccuracyEntry(
            sku=sku,
            forecast_date=as_of - timedelta(days=days_ago),
            predicted_units=10.0,
            actual_units=10.0 * (1 + error),
            percentage_error=error,
            within_tolerance=error <= 0.2,
        )

    return _make


@pytest.fixture
def make_anomaly(as_of: date) -> Callable[..., AnomalyEvent]:
    """Anomaly of the given type for a SKU."""

    def _make(sku: str, event_type: str, financial_impact: float = 0.0) -> AnomalyEvent:
        return AnomalyEvent(
            id=f"{event_type}-{sku}-{as_of:%Y%m%d}",
            sku=sku,
            event_type=event_type,
            detected_at=as_of,
            start_date=as_of,
            financial_impact=financial_impact,
            root_cause="test",
            root_cause_confidence=0.5,
        )

    return _make


@pytest.fixture
def holiday_peak() -> SeasonalEvent:
    """Black Friday through Christmas, 4x."""
    return SeasonalEvent(
        name="Black Friday through Christmas",
        event_type="major_peak",
        start_month=11,
        start_day=15,
        end_month=12,
        end_day=24,
        base_multiplier=4.0,
    )
