"""Tests for supplier lead-time analysis."""

import math
from collections.abc import Callable
from datetime import date

import pytest

from app.core.config import ForecastConfig
from app.features.lead_time.analyzer import (
    analyze_supplier_lead_time,
    check_lead_time_alerts,
    effective_lead_time,
    lead_time_trend,
    supplier_scorecard,
    total_lead_time,
)
from app.features.lead_time.schemas import LeadTimeData, PurchaseOrderRecord


class TestAnalyzeSupplierLeadTime:
    """Tests for purchase-order history analysis."""

    def test_insufficient_history_assumes_stated(
        self,
        config: ForecastConfig,
        as_of: date,
        make_orders: Callable[..., list[PurchaseOrderRecord]],
    ) -> None:
        """Fewer than three deliveries fall back to the stated lead time."""
        orders = [
            *make_orders([40, 45]),
            PurchaseOrderRecord(ordered_at=date(2024, 12, 1)),
        ]

        data = analyze_supplier_lead_time("SUP-1", "Acme", 30, orders, config, as_of)

        assert data.avg_actual_lead_time == 30.0
        assert data.worst_case_lead_time == 45.0
        assert data.on_time_rate == 1.0
        assert data.lead_time_variance == 0.0
        assert data.reliability_score == 0.5
        assert data.po_count == 2
        assert data.is_getting_worse is False

    def test_perfect_supplier(
        self,
        config: ForecastConfig,
        as_of: date,
        make_orders: Callable[..., list[PurchaseOrderRecord]],
    ) -> None:
        """Always on time with no variability scores 1.0."""
        data = analyze_supplier_lead_time(
            "SUP-1", "Acme", 30, make_orders([30, 30, 30, 30]), config, as_of
        )

        assert data.avg_actual_lead_time == 30.0
        assert data.worst_case_lead_time == 30.0
        assert data.lead_time_variance == 0.0
        assert data.reliability_score == pytest.approx(1.0)
        assert data.avg_fba_receiving_time == 10.0
        assert data.worst_case_fba_receiving_time == 14.0

    def test_statistics(
        self,
        config: ForecastConfig,
        as_of: date,
        make_orders: Callable[..., list[PurchaseOrderRecord]],
    ) -> None:
        """Mean, 95th percentile, population std and composite reliability."""
        data = analyze_supplier_lead_time(
            "SUP-1", "Acme", 30, make_orders([20, 25, 30, 35, 40]), config, as_of
        )

        std = math.sqrt(50)
        assert data.avg_actual_lead_time == pytest.approx(30.0)
        assert data.worst_case_lead_time == 40.0
        assert data.lead_time_variance == pytest.approx(std)
        assert data.on_time_rate == pytest.approx(0.6)
        assert data.reliability_score == pytest.approx(0.3 + 0.5 * (1 - std / 30))

    def test_per_order_stated_lead_time(
        self,
        config: ForecastConfig,
        as_of: date,
        make_orders: Callable[..., list[PurchaseOrderRecord]],
    ) -> None:
        """A promise on the order overrides the supplier's stated lead time."""
        data = analyze_supplier_lead_time(
            "SUP-1", "Acme", 30, make_orders([35, 35, 35], stated=40), config, as_of
        )

        assert data.on_time_rate == 1.0

    def test_worsening_trend(
        self,
        config: ForecastConfig,
        as_of: date,
        make_orders: Callable[..., list[PurchaseOrderRecord]],
    ) -> None:
        """The last ten orders 25% slower than the ten before flag worsening."""
        data = analyze_supplier_lead_time(
            "SUP-1", "Acme", 30, make_orders([20] * 10 + [25] * 10), config, as_of
        )

        assert data.trend_pct == pytest.approx(25.0)
        assert data.is_getting_worse is True

    def test_trend_needs_older_window(self, config: ForecastConfig) -> None:
        """Fewer than five older orders give a neutral trend."""
        assert lead_time_trend([30] * 10 + [20] * 4, config) == (0.0, False)


class TestPlanningLeadTimes:
    """Tests for effective and total lead time."""

    def test_reliable_supplier_uses_average(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """Reliable suppliers plan on the rounded-up average."""
        data = make_data(avg_actual_lead_time=30.2)

        assert effective_lead_time(data, config) == 31

    def test_unreliable_supplier_uses_midpoint(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """Below 0.7 reliability the average/worst midpoint is used."""
        data = make_data(reliability_score=0.68, worst_case_lead_time=40.0)

        assert effective_lead_time(data, config) == 35

    def test_midpoint_follows_reliability_threshold(
        self, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """A stricter threshold moves an 80% supplier to the midpoint."""
        config = ForecastConfig.model_validate({"safety_stock": {"reliability_threshold": 0.9}})
        data = make_data(reliability_score=0.8, worst_case_lead_time=40.0)

        assert effective_lead_time(data, config) == 35

    def test_total_lead_time(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """Supplier plus FBA receiving plus a 3-day buffer."""
        assert total_lead_time(make_data(), config) == 30 + 10 + 3

    def test_total_uses_receiving_buffer(self, make_data: Callable[..., LeadTimeData]) -> None:
        """The buffer is the configured FBA receiving buffer."""
        config = ForecastConfig.model_validate({"fba": {"receiving_buffer_days": 5}})

        assert total_lead_time(make_data(), config) == 30 + 10 + 5


class TestCheckLeadTimeAlerts:
    """Tests for supplier reliability alerts."""

    def test_healthy_supplier_has_no_alerts(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """No alert for a supplier that keeps its promises."""
        assert check_lead_time_alerts(make_data(), config) == []

    def test_all_alerts(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """A slow, erratic, unreliable supplier raises all three alerts."""
        data = make_data(
            stated_lead_time=20,
            avg_actual_lead_time=32.0,
            lead_time_variance=7.0,
            reliability_score=0.35,
        )

        alerts = {a.alert_type: a for a in check_lead_time_alerts(data, config)}

        assert set(alerts) == {"avg_increase", "variance_increase", "reliability_drop"}
        assert alerts["avg_increase"].severity == "high"
        assert alerts["avg_increase"].message == (
            "Average lead time (32 days) exceeds stated (20 days) by 60%"
        )
        assert alerts["variance_increase"].severity == "medium"
        assert alerts["reliability_drop"].severity == "high"
        assert all(a.recommended_action for a in alerts.values())

    def test_medium_severities(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """Moderate drift and reliability are medium severity."""
        data = make_data(stated_lead_time=20, avg_actual_lead_time=27.0, reliability_score=0.5)

        alerts = {a.alert_type: a for a in check_lead_time_alerts(data, config)}

        assert alerts["avg_increase"].severity == "medium"
        assert alerts["reliability_drop"].severity == "medium"

    def test_alert_ratios_from_config(self, make_data: Callable[..., LeadTimeData]) -> None:
        """Tighter ratios and a higher reliability floor raise more alerts."""
        config = ForecastConfig.model_validate(
            {
                "lead_time": {"variance_ratio": 0.05, "reliability_alert": 0.9},
                "safety_stock": {"reliability_threshold": 0.9},
            }
        )
        data = make_data(lead_time_variance=2.0, reliability_score=0.85)

        alerts = {a.alert_type: a for a in check_lead_time_alerts(data, config)}

        assert set(alerts) == {"variance_increase", "reliability_drop"}
        assert alerts["reliability_drop"].message == (
            "Supplier reliability score is 85% (target: >90%)"
        )
        assert alerts["reliability_drop"].previous_value == 0.9


class TestSupplierScorecard:
    """Tests for supplier grading."""

    @pytest.mark.parametrize(
        ("reliability", "grade"),
        [(0.95, "A"), (0.85, "B"), (0.75, "C"), (0.65, "D"), (0.55, "F")],
    )
    def test_grades(
        self,
        config: ForecastConfig,
        make_data: Callable[..., LeadTimeData],
        reliability: float,
        grade: str,
    ) -> None:
        """Grades follow 90/80/70/60 reliability cutoffs."""
        assert supplier_scorecard(make_data(reliability_score=reliability), config).grade == grade

    def test_strengths(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """A dependable supplier lists strengths and no weaknesses."""
        card = supplier_scorecard(make_data(), config)

        assert "Highly reliable supplier" in card.strengths
        assert "Consistently delivers on time" in card.strengths
        assert card.weaknesses == []
        assert card.trend == "Stable"
        assert card.reliability_score == 95

    def test_weaknesses(
        self, config: ForecastConfig, make_data: Callable[..., LeadTimeData]
    ) -> None:
        """Late, unreliable, worsening and erratic suppliers list each weakness."""
        card = supplier_scorecard(
            make_data(
                avg_actual_lead_time=39.0,
                reliability_score=0.5,
                on_time_rate=0.4,
                lead_time_variance=8.0,
                is_getting_worse=True,
                trend_pct=18.0,
            ),
            config,
        )

        assert len(card.weaknesses) == 4
        assert card.weaknesses[0].startswith("Lead times are 30% longer than stated")
        assert card.trend == "+18%"
        assert card.strengths == []
