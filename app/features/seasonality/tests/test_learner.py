"""Tests for event multiplier learning and pattern mining."""

from datetime import date
from typing import Any

import pytest

from app.core.config import ForecastConfig
from app.features.seasonality.learner import (
    apply_learned_multiplier,
    detect_new_seasonal_patterns,
    learn_seasonal_multipliers,
    recency_weights,
    update_sku_event_multiplier,
)
from app.features.seasonality.schemas import SeasonalEvent
from app.shared.schemas import SalesDataPoint


class TestRecencyWeights:
    """Tests for year weighting."""

    def test_default_weights(self) -> None:
        """Newest year 0.6, then 0.4/1, 0.4/2."""
        assert recency_weights(3, 0.6) == pytest.approx([0.6, 0.4, 0.2])

    def test_single_year(self) -> None:
        """One year gets the recent weight only."""
        assert recency_weights(1, 0.6) == [0.6]


class TestLearnSeasonalMultipliers:
    """Tests for learn_seasonal_multipliers."""

    def test_holiday_example(
        self,
        three_year_holiday_sales: list[SalesDataPoint],
        holiday_event: SeasonalEvent,
        config: ForecastConfig,
    ) -> None:
        """35/day inside the window vs 10/day outside over 3 years learns 3.5."""
        learned = learn_seasonal_multipliers(
            "SKU-1", three_year_holiday_sales, [holiday_event], config
        )

        assert len(learned) == 1
        result = learned[0]
        assert result.learned_multiplier == pytest.approx(3.5)
        assert result.years_seen == 3
        assert result.confidence == pytest.approx(1.0)
        assert result.baseline == pytest.approx(10.0)
        assert result.event_id == holiday_event.id

    def test_idempotent(
        self,
        three_year_holiday_sales: list[SalesDataPoint],
        holiday_event: SeasonalEvent,
        config: ForecastConfig,
    ) -> None:
        """Running twice on identical input gives identical output."""
        first = learn_seasonal_multipliers(
            "SKU-1", three_year_holiday_sales, [holiday_event], config
        )
        updated = apply_learned_multiplier(holiday_event, first[0])
        second = learn_seasonal_multipliers("SKU-1", three_year_holiday_sales, [updated], config)

        assert first == second

    def test_recent_years_weigh_more(
        self, holiday_event: SeasonalEvent, config: ForecastConfig, make_series: Any
    ) -> None:
        """In-window averages of 20/30/40 (oldest to newest) weight toward 40."""
        window_units = {2021: 20.0, 2022: 30.0, 2023: 40.0}

        def units(d: date) -> float:
            in_window = (d.month == 11 and d.day >= 15) or (d.month == 12 and d.day <= 24)
            return window_units[d.year] if in_window else 10.0

        sales = make_series(date(2021, 1, 1), 1095, units)
        learned = learn_seasonal_multipliers(None, sales, [holiday_event], config)

        expected = (0.6 * 40 + 0.4 * 30 + 0.2 * 20) / 1.2 / 10
        assert learned[0].learned_multiplier == pytest.approx(expected)
        assert learned[0].sku is None

    def test_short_history_is_noop(
        self, holiday_event: SeasonalEvent, config: ForecastConfig, make_series: Any
    ) -> None:
        """Fewer than 365 days learns nothing."""
        sales = make_series(date(2024, 1, 1), 300, lambda d: 10.0)
        assert learn_seasonal_multipliers("SKU-1", sales, [holiday_event], config) == []

    def test_inactive_events_ignored(
        self,
        three_year_holiday_sales: list[SalesDataPoint],
        holiday_event: SeasonalEvent,
        config: ForecastConfig,
    ) -> None:
        """Inactive events neither learn nor shape the baseline."""
        inactive = holiday_event.model_copy(update={"is_active": False})
        learned = learn_seasonal_multipliers("SKU-1", three_year_holiday_sales, [inactive], config)

        assert learned == []

    def test_zero_baseline_falls_back_to_one(
        self, holiday_event: SeasonalEvent, config: ForecastConfig, make_series: Any
    ) -> None:
        """Zero sales outside every window uses a neutral baseline of 1."""

        def units(d: date) -> float:
            in_window = (d.month == 11 and d.day >= 15) or (d.month == 12 and d.day <= 24)
            return 5.0 if in_window else 0.0

        sales = make_series(date(2023, 1, 1), 365, units)
        learned = learn_seasonal_multipliers("SKU-1", sales, [holiday_event], config)

        assert learned[0].baseline == 1.0
        assert learned[0].learned_multiplier == pytest.approx(5.0)

    def test_missing_window_days_are_zero_sales(
        self,
        three_year_holiday_sales: list[SalesDataPoint],
        holiday_event: SeasonalEvent,
        config: ForecastConfig,
    ) -> None:
        """Unrecorded days inside the window pull its average down."""
        sales = [
            p
            for p in three_year_holiday_sales
            if p.units == 10.0 or p.date.toordinal() % 2 == 0
        ]

        learned = learn_seasonal_multipliers("SKU-1", sales, [holiday_event], config)

        # Half of each 40-day window sold 35, the other half nothing
        assert learned[0].learned_multiplier == pytest.approx(1.75)
        assert learned[0].baseline == pytest.approx(10.0)

    def test_windows_grouped_by_calendar_year(
        self, wrapping_event: SeasonalEvent, config: ForecastConfig, make_series: Any
    ) -> None:
        """A window crossing New Year is split between the two calendar years."""
        sales = make_series(date(2021, 1, 1), 1095, lambda d: 10.0)

        learned = learn_seasonal_multipliers("SKU-1", sales, [wrapping_event], config)

        assert learned[0].years_seen == 3
        assert sorted(learned[0].yearly_averages) == [2021, 2022, 2023]


class TestApplyLearned:
    """Tests for folding learned values into events."""

    def test_global_learn_sets_learned_multiplier(
        self,
        three_year_holiday_sales: list[SalesDataPoint],
        holiday_event: SeasonalEvent,
        config: ForecastConfig,
    ) -> None:
        """A global learn never overwrites the base multiplier."""
        learned = learn_seasonal_multipliers(
            None, three_year_holiday_sales, [holiday_event], config
        )
        updated = apply_learned_multiplier(holiday_event, learned[0])

        assert updated.learned_multiplier == pytest.approx(3.5)
        assert updated.base_multiplier == 4.0
        assert updated.sku_multipliers == {}

    def test_sku_learn_sets_override(self, holiday_event: SeasonalEvent) -> None:
        """Per-SKU updates keep other SKUs' overrides."""
        event = update_sku_event_multiplier(holiday_event, "SKU-1", 3.0)
        event = update_sku_event_multiplier(event, "SKU-2", 2.5)

        assert event.sku_multipliers == {"SKU-1": 3.0, "SKU-2": 2.5}
        assert holiday_event.sku_multipliers == {}

    def test_rejects_non_positive_multiplier(self, holiday_event: SeasonalEvent) -> None:
        """Multipliers must be positive."""
        with pytest.raises(ValueError, match="must be > 0"):
            update_sku_event_multiplier(holiday_event, "SKU-1", 0)


class TestDetectNewSeasonalPatterns:
    """Tests for undeclared pattern mining."""

    def test_recurring_spike_detected(self, config: ForecastConfig, make_series: Any) -> None:
        """A Mar 10-14 spike in three years is surfaced once."""

        def units(d: date) -> float:
            return 30.0 if d.month == 3 and 10 <= d.day <= 14 else 10.0

        sales = make_series(date(2021, 1, 1), 1095, units)
        patterns = detect_new_seasonal_patterns(sales, config)

        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.suggested_name == "Mar 10-14 Spike"
        assert (pattern.start_month, pattern.start_day) == (3, 10)
        assert (pattern.end_month, pattern.end_day) == (3, 14)
        assert pattern.years_seen == 3
        assert pattern.confidence == pytest.approx(1.0)
        assert pattern.avg_multiplier > 2.5

    def test_one_off_spike_ignored(self, config: ForecastConfig, make_series: Any) -> None:
        """A spike in a single year does not recur."""

        def units(d: date) -> float:
            return 30.0 if d.year == 2022 and d.month == 8 and d.day <= 5 else 10.0

        sales = make_series(date(2021, 1, 1), 1095, units)
        assert detect_new_seasonal_patterns(sales, config) == []

    def test_short_spikes_ignored(self, config: ForecastConfig, make_series: Any) -> None:
        """Two-day bursts are below the minimum run length."""

        def units(d: date) -> float:
            return 30.0 if d.month == 5 and d.day in (1, 2) else 10.0

        sales = make_series(date(2021, 1, 1), 1095, units)
        assert detect_new_seasonal_patterns(sales, config) == []

    def test_requires_two_years(self, config: ForecastConfig, make_series: Any) -> None:
        """Less than two years of history returns nothing."""
        sales = make_series(date(2023, 1, 1), 500, lambda d: 10.0)
        assert detect_new_seasonal_patterns(sales, config) == []
