"""Tests for analog matching, new-item forecasts and recalibration."""

from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.new_items.matcher import (
    days_since_launch,
    find_analog_sku,
    forecast_new_item,
    recalibrate_new_item,
)
from app.features.new_items.schemas import CandidateProduct, NewItemForecast, ProductProfile
from app.features.seasonality.schemas import SeasonalEvent


def _flagged_forecast(base_velocity: float = 4.0, confidence: float = 0.72) -> NewItemForecast:
    return NewItemForecast(
        sku="SKU-NEW",
        is_new_item=True,
        days_since_launch=10,
        watch_status="high_watch",
        base_velocity=base_velocity,
        adjusted_velocity=base_velocity,
        confidence=confidence,
        next_check_date=date(2024, 3, 14),
        check_frequency="every_3_days",
        needs_recalibration=True,
    )


class TestFindAnalogSku:
    """Tests for analog scoring."""

    def test_best_match(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
    ) -> None:
        """Highest score wins; the item itself and unsold SKUs are skipped."""
        match = find_analog_sku(new_item, candidates, config)

        assert match is not None
        assert match.analog_sku == "SKU-A"
        assert match.match_score == pytest.approx(0.9)
        assert match.match_reasons == ["Same category", "Similar price point", "Same brand"]
        assert match.match_criteria.category is True
        assert match.match_criteria.supplier is False
        assert match.analog_performance.first_month_velocity == 4.0

    def test_half_credit_for_comparable_price(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
    ) -> None:
        """A price within 40% earns half the price weight."""
        match = find_analog_sku(new_item, [candidates[1]], config)

        assert match is not None
        assert match.match_score == pytest.approx(0.65)
        assert "Comparable price range" in match.match_reasons
        assert match.match_criteria.price_range is False
        # No first-month figure: 30-day velocity stands in
        assert match.analog_performance.first_month_velocity == 20.0

    def test_tie_goes_to_faster_seller(
        self, config: ForecastConfig, new_item: ProductProfile
    ) -> None:
        """Equal scores are broken by 30-day velocity."""
        slow = CandidateProduct(sku="SLOW", category="kitchen", price=20.0, velocity_30d=2.0)
        fast = CandidateProduct(sku="FAST", category="kitchen", price=20.0, velocity_30d=8.0)

        match = find_analog_sku(new_item, [slow, fast], config)

        assert match is not None
        assert match.analog_sku == "FAST"

    def test_below_minimum_score(self, config: ForecastConfig, new_item: ProductProfile) -> None:
        """A price-only match (0.3) is not an analog."""
        weak = CandidateProduct(sku="WEAK", category="garden", price=20.0, velocity_30d=5.0)

        assert find_analog_sku(new_item, [weak], config) is None

    def test_no_candidates(self, config: ForecastConfig, new_item: ProductProfile) -> None:
        """Empty candidate list yields no analog."""
        assert find_analog_sku(new_item, [], config) is None


class TestForecastNewItem:
    """Tests for new-item forecasts and watch cadence."""

    @pytest.mark.parametrize(
        ("days", "watch", "frequency", "check_in", "is_new"),
        [
            (0, "high_watch", "daily", 1, True),
            (7, "high_watch", "daily", 1, True),
            (8, "high_watch", "every_3_days", 3, True),
            (30, "high_watch", "every_3_days", 3, True),
            (45, "normal", "weekly", 7, True),
            (120, "normal", "weekly", 7, False),
        ],
    )
    def test_watch_cadence(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        launch_date: date,
        days: int,
        watch: str,
        frequency: str,
        check_in: int,
        is_new: bool,
    ) -> None:
        """Cadence tightens in the first week and relaxes after day 30."""
        as_of = launch_date + timedelta(days=days)

        forecast, _ = forecast_new_item(new_item, [], config, as_of)

        assert forecast.days_since_launch == days
        assert forecast.is_new_item is is_new
        assert forecast.watch_status == watch
        assert forecast.check_frequency == frequency
        assert forecast.next_check_date == as_of + timedelta(days=check_in)

    def test_analog_velocity_and_confidence(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
        launch_date: date,
    ) -> None:
        """Base velocity is the analog's first month at 0.8 x match score confidence."""
        forecast, analog = forecast_new_item(
            new_item, candidates, config, launch_date + timedelta(days=3)
        )

        assert analog is not None
        assert forecast.analog_sku == "SKU-A"
        assert forecast.base_velocity == 4.0
        assert forecast.confidence == pytest.approx(0.72)
        assert forecast.actual_vs_forecasted is None

    def test_no_analog_default(
        self, config: ForecastConfig, new_item: ProductProfile, launch_date: date
    ) -> None:
        """Without an analog: 1 unit/day at 0.3 confidence."""
        forecast, analog = forecast_new_item(new_item, [], config, launch_date)

        assert analog is None
        assert forecast.base_velocity == 1.0
        assert forecast.confidence == 0.3

    def test_never_sold_is_day_zero(self, config: ForecastConfig) -> None:
        """A SKU without a launch date is brand new."""
        item = ProductProfile(sku="SKU-X", price=10.0)

        assert days_since_launch(item, date(2024, 6, 1)) == 0

    def test_seasonal_multiplier(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
        launch_date: date,
    ) -> None:
        """An active event on as_of scales the adjusted velocity."""
        march = SeasonalEvent(
            name="March Promo",
            event_type="micro_peak",
            start_month=3,
            start_day=1,
            end_month=3,
            end_day=31,
            base_multiplier=2.0,
        )

        forecast, _ = forecast_new_item(
            new_item, candidates, config, launch_date + timedelta(days=3), events=[march]
        )

        assert forecast.seasonal_multiplier == 2.0
        assert forecast.adjusted_velocity == pytest.approx(8.0)

    def test_flags_recalibration_in_second_week(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
        launch_date: date,
    ) -> None:
        """A 50% deviation on day 10 needs recalibration."""
        forecast, _ = forecast_new_item(
            new_item, candidates, config, launch_date + timedelta(days=10), actual_velocity=6.0
        )

        assert forecast.actual_vs_forecasted == pytest.approx(50.0)
        assert forecast.needs_recalibration is True

    def test_no_recalibration_after_two_weeks(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
        launch_date: date,
    ) -> None:
        """Deviation is still reported after day 14 but not flagged."""
        forecast, _ = forecast_new_item(
            new_item, candidates, config, launch_date + timedelta(days=20), actual_velocity=6.0
        )

        assert forecast.actual_vs_forecasted == pytest.approx(50.0)
        assert forecast.needs_recalibration is False

    def test_recalibration_window_from_config(
        self,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
        launch_date: date,
    ) -> None:
        """A 30-day window still flags the deviation on day 20."""
        config = ForecastConfig.model_validate({"new_item": {"recalibration_window_days": 30}})
        forecast, _ = forecast_new_item(
            new_item, candidates, config, launch_date + timedelta(days=20), actual_velocity=6.0
        )

        assert forecast.needs_recalibration is True

    def test_first_week_ignores_actuals(
        self,
        config: ForecastConfig,
        new_item: ProductProfile,
        candidates: list[CandidateProduct],
        launch_date: date,
    ) -> None:
        """Actual velocity is not compared during the first 7 days."""
        forecast, _ = forecast_new_item(
            new_item, candidates, config, launch_date + timedelta(days=5), actual_velocity=20.0
        )

        assert forecast.actual_vs_forecasted is None
        assert forecast.needs_recalibration is False


class TestRecalibrateNewItem:
    """Tests for blending forecasts with observed sales."""

    def test_outperforming(self, config: ForecastConfig) -> None:
        """Actual above 130% of forecast gets 70% weight."""
        result = recalibrate_new_item(_flagged_forecast(), 6.0, config)

        assert result.recalibrated is True
        assert result.new_velocity == pytest.approx(5.4)
        assert result.change_percent == pytest.approx(35.0)
        assert result.reason == "Outperforming analog by 50% - adjusting forecast upward"
        assert result.forecast.watch_status == "high_watch"
        assert result.forecast.confidence == pytest.approx(0.82)
        assert result.forecast.needs_recalibration is False

    def test_large_change_is_critical(self, config: ForecastConfig) -> None:
        """A velocity change above 50% puts the SKU on critical watch."""
        result = recalibrate_new_item(_flagged_forecast(), 10.0, config)

        assert result.new_velocity == pytest.approx(8.2)
        assert result.forecast.watch_status == "critical"

    def test_underperforming(self, config: ForecastConfig) -> None:
        """Actual below 70% of forecast gets 70% weight."""
        result = recalibrate_new_item(_flagged_forecast(), 2.0, config)

        assert result.new_velocity == pytest.approx(2.6)
        assert result.reason.startswith("Underperforming analog by 50%")

    def test_within_range_even_blend(self, config: ForecastConfig) -> None:
        """Inside +/-30% the blend is 50/50."""
        result = recalibrate_new_item(_flagged_forecast(), 4.4, config, force=True)

        assert result.new_velocity == pytest.approx(4.2)
        assert result.reason == "Performance within expected range - minor adjustment"

    def test_confidence_capped(self, config: ForecastConfig) -> None:
        """Confidence never exceeds 0.9."""
        result = recalibrate_new_item(_flagged_forecast(confidence=0.85), 6.0, config)

        assert result.forecast.confidence == pytest.approx(0.9)

    def test_unflagged_unchanged(self, config: ForecastConfig) -> None:
        """Forecasts not flagged are returned unchanged unless forced."""
        forecast = _flagged_forecast().model_copy(update={"needs_recalibration": False})

        result = recalibrate_new_item(forecast, 10.0, config)

        assert result.recalibrated is False
        assert result.new_velocity == 4.0
        assert result.reason == "No recalibration needed"
        assert result.forecast == forecast
