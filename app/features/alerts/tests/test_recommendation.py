"""Tests for urgency classification and reorder recommendations."""

from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.alerts.recommendation import generate_reorder_recommendation
from app.features.alerts.urgency import calculate_days_of_supply, classify_urgency
from app.shared.schemas import InventoryPosition


class TestClassifyUrgency:
    """Cutoffs are inclusive upper bounds."""

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (-3, "critical"),
            (14, "critical"),
            (15, "high"),
            (30, "high"),
            (31, "medium"),
            (60, "medium"),
            (90, "low"),
            (91, "ok"),
        ],
    )
    def test_boundaries(self, config: ForecastConfig, days: float, expected: str) -> None:
        """Each boundary day falls into the lower band."""
        assert classify_urgency(days, config) == expected


class TestDaysOfSupply:
    """Days of supply per location."""

    def test_per_location(self, stocked_position: InventoryPosition) -> None:
        """FBA counts inbound units; total counts every location."""
        result = calculate_days_of_supply(stocked_position, 10.0)

        assert result.fba == pytest.approx(15.0)
        assert result.warehouse == pytest.approx(30.0)
        assert result.total == pytest.approx(45.0)

    def test_no_velocity(self, stocked_position: InventoryPosition) -> None:
        """Zero velocity reports 999 days everywhere."""
        result = calculate_days_of_supply(stocked_position, 0.0)

        assert (result.fba, result.warehouse, result.total) == (999.0, 999.0, 999.0)


class TestReorderRecommendation:
    """Reorder point, quantities and urgency."""

    def test_stocked_sku(
        self, config: ForecastConfig, stocked_position: InventoryPosition, as_of: date
    ) -> None:
        """45 days of cover against a 30-day lead time is critical."""
        rec = generate_reorder_recommendation(
            "SKU-1", [10.0] * 30, 50, stocked_position, 30, config, as_of
        )

        assert rec.avg_daily_forecast == pytest.approx(10.0)
        assert rec.reorder_point == 350
        assert rec.recommended_order_qty == 1350
        # FBA needs 550 - 150 but only 300 sit in the warehouse
        assert rec.recommended_fba_qty == 300
        assert rec.urgency == "critical"
        assert rec.stockout_date == as_of + timedelta(days=45)
        assert rec.reasoning == [
            "Selling 10.0 units/day",
            "45 days of supply remaining",
            "Safety stock: 50 units",
            "Order 1350 units to reach 180-day target (Lead time: 30 days)",
            "Send 300 units to FBA to reach 45-day target",
        ]

    def test_overstocked_sku(self, config: ForecastConfig, as_of: date) -> None:
        """Enough stock means no order, no stockout date and only an FBA transfer."""
        position = InventoryPosition(warehouse_available=5000)

        rec = generate_reorder_recommendation("SKU-2", [10.0] * 30, 50, position, 30, config, as_of)

        assert rec.recommended_order_qty == 0
        assert rec.recommended_fba_qty == 550
        assert rec.urgency == "ok"
        assert rec.stockout_date is None
        assert not any(line.startswith("Order") for line in rec.reasoning)

    def test_no_forecasts(
        self, config: ForecastConfig, stocked_position: InventoryPosition, as_of: date
    ) -> None:
        """An empty forecast means no demand."""
        rec = generate_reorder_recommendation("SKU-3", [], 0, stocked_position, 30, config, as_of)

        assert rec.avg_daily_forecast == 0.0
        assert rec.days_of_supply.total == 999.0
        assert rec.recommended_order_qty == 0
        assert rec.recommended_fba_qty == 0
        assert rec.urgency == "ok"
