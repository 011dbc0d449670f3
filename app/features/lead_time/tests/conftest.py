"""Test fixtures for lead-time module."""

from collections.abc import Callable, Sequence
from datetime import date, timedelta
from typing import Any

import pytest

from app.core.config import ForecastConfig
from app.features.lead_time.schemas import LeadTimeData, PurchaseOrderRecord


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def as_of() -> date:
    """Analysis date."""
    return date(2024, 12, 31)


@pytest.fixture
def make_orders() -> Callable[..., list[PurchaseOrderRecord]]:
    """Delivered orders 30 days apart with the given lead times, oldest first."""

    def _make(
        lead_times: Sequence[int], stated: int | None = None, start: date = date(2023, 1, 1)
    ) -> list[PurchaseOrderRecord]:
        orders = []
        for i, lead_time in enumerate(lead_times):
            ordered = start + timedelta(days=30 * i)
            orders.append(
                PurchaseOrderRecord(
                    po_id=f"PO-{i}",
                    ordered_at=ordered,
                    stated_lead_time_days=stated,
                    actual_delivery_at=ordered + timedelta(days=lead_time),
                )
            )
        return orders

    return _make


@pytest.fixture
def make_data(as_of: date) -> Callable[..., LeadTimeData]:
    """LeadTimeData for a well-behaved 30-day supplier, with overrides."""

    def _make(**overrides: Any) -> LeadTimeData:  # noqa: ANN401
        values: dict[str, Any] = {
            "supplier_id": "SUP-1",
            "supplier_name": "Acme Manufacturing",
            "stated_lead_time": 30,
            "avg_actual_lead_time": 30.0,
            "worst_case_lead_time": 32.0,
            "on_time_rate": 1.0,
            "lead_time_variance": 1.0,
            "reliability_score": 0.95,
            "avg_fba_receiving_time": 10.0,
            "worst_case_fba_receiving_time": 14.0,
            "po_count": 12,
            "last_calculated": as_of,
        }
        values.update(overrides)
        return LeadTimeData(**values)

    return _make
