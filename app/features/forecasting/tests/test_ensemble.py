"""Tests for the weighted ensemble and horizon aggregation."""

import math
from datetime import date, timedelta

import numpy as np
import pytest

from app.core.config import ForecastConfig
from app.features.deals.schemas import ScheduledDeal
from app.features.forecasting.ensemble import (
    generate_aggregated_forecast,
    generate_ensemble_forecast,
    normalize_weights,
    point_safety_stock,
    run_ensemble,
)
from app.features.forecasting.models import ExponentialSmoothingForecaster, build_ensemble_models
from app.features.forecasting.schemas import ModelWeights
from app.features.seasonality.schemas import SeasonalEvent
from app.features.spikes.detector import detect_spike
from app.shared.schemas import SalesDataPoint


class ExplodingForecaster(ExponentialSmoothingForecaster):
    """Forecaster whose fit always fails."""

    def fit(self, y, X=None):  # type: ignore[no-untyped-def]
        raise RuntimeError("solver diverged")


class TestNormalizeWeights:
    """Tests for weight renormalization."""

    def test_redistributes_over_available(self) -> None:
        """Missing models drop out and the rest scale proportionally."""
        weights = {"prophet": 0.3, "lstm": 0.25, "exponential_smoothing": 0.3, "arima": 0.15}
        result = normalize_weights(weights, ["prophet", "arima"])

        assert result == pytest.approx({"prophet": 0.3 / 0.45, "arima": 0.15 / 0.45})

    def test_all_zero_is_equal(self) -> None:
        """All-zero weights fall back to equal weights."""
        result = normalize_weights({"prophet": 0.0, "lstm": 0.0}, ["prophet", "lstm"])
        assert result == {"prophet": 0.5, "lstm": 0.5}

    def test_none_is_equal(self) -> None:
        """No weights at all means equal weights."""
        result = normalize_weights(None, ["prophet", "lstm", "arima", "exponential_smoothing"])
        assert set(result.values()) == {0.25}


class TestGenerateEnsembleForecast:
    """Tests for generate_ensemble_forecast."""

    def test_flat_history(
        self, flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """Flat history forecasts the flat level from every model."""
        forecasts = generate_ensemble_forecast("SKU-1", flat_sales, 14, config, as_of)

        assert len(forecasts) == 14
        assert forecasts[0].date == as_of + timedelta(days=1)
        assert forecasts[-1].date == as_of + timedelta(days=14)
        for f in forecasts:
            assert f.base_forecast == pytest.approx(10.0, abs=0.01)
            assert len(f.models_used) == 4
            assert 0 <= f.confidence <= 1
            assert f.lower_bound <= f.final_forecast <= f.upper_bound

    def test_final_is_product_in_order(
        self,
        flat_sales: list[SalesDataPoint],
        config: ForecastConfig,
        as_of: date,
        july_event: SeasonalEvent,
        july_deal: ScheduledDeal,
    ) -> None:
        """final equals base x seasonality x deal x spike, exactly."""
        forecasts = generate_ensemble_forecast(
            "SKU-1", flat_sales, 10, config, as_of, events=[july_event], deals=[july_deal]
        )

        for f in forecasts:
            expected = f.base_forecast
            expected *= f.seasonality_multiplier
            expected *= f.deal_multiplier
            expected *= f.spike_multiplier
            assert f.final_forecast == expected

        july_3 = forecasts[2]
        assert july_3.date == date(2024, 7, 3)
        assert july_3.seasonality_multiplier == 2.0
        assert july_3.seasonal_event == "Summer Kickoff"
        assert july_3.deal_multiplier == 3.0
        assert july_3.final_forecast == pytest.approx(60.0, abs=0.1)

    def test_reasoning_order_and_length(
        self,
        flat_sales: list[SalesDataPoint],
        config: ForecastConfig,
        as_of: date,
        july_event: SeasonalEvent,
        july_deal: ScheduledDeal,
    ) -> None:
        """Reasoning has base, primary, one line per multiplier, then final."""
        forecasts = generate_ensemble_forecast(
            "SKU-1", flat_sales, 10, config, as_of, events=[july_event], deals=[july_deal]
        )

        plain = forecasts[6]  # July 7: no multipliers
        assert len(plain.reasoning) == 2
        assert plain.reasoning[0].startswith("Base forecast: 10.0 units/day (ensemble of 4 models)")
        assert plain.reasoning[1].startswith("Primary model: ")

        both = forecasts[2]  # July 3: season and deal
        assert len(both.reasoning) == 5
        assert both.reasoning[2].startswith("Seasonality: 2.00x (peak season")
        assert both.reasoning[3] == "Deal impact: 3.00x"
        assert both.reasoning[4].startswith("Final forecast: ")

    def test_primary_model_from_weights(
        self, flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """The highest-weighted model is reported as primary."""
        weights = ModelWeights(
            sku="SKU-1", prophet=0.1, lstm=0.1, exponential_smoothing=0.1, arima=0.7
        )
        forecasts = generate_ensemble_forecast(
            "SKU-1", flat_sales, 3, config, as_of, weights=weights
        )
        assert forecasts[0].reasoning[1] == "Primary model: ARIMA (70% weight)"

    def test_failed_model_excluded(
        self, flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """A failing model is excluded and confidence scaled by models used / total."""
        models = build_ensemble_models()
        models["exponential_smoothing"] = ExplodingForecaster()
        run = run_ensemble("SKU-1", flat_sales, 5, config, as_of, models=models)

        assert "exponential_smoothing" in run.excluded_models
        assert set(run.weights_used) == {"prophet", "lstm", "arima"}
        assert sum(run.weights_used.values()) == pytest.approx(1.0)

        first = run.forecasts[0]
        assert first.models_used == ["prophet", "lstm", "arima"]
        assert first.reasoning[-1] == "Excluded models: exponential_smoothing"
        expected_conf = sum(
            run.weights_used[p.model] * p.daily_confidence[0] for p in run.predictions
        ) * (3 / 4)
        assert first.confidence == pytest.approx(expected_conf)

    def test_spike_multiplier_applied(
        self, spiking_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """A spiking detection decays over the horizon."""
        spike = detect_spike("SKU-1", spiking_sales, config, as_of=as_of)
        forecasts = generate_ensemble_forecast(
            "SKU-1", spiking_sales, 90, config, as_of, spike=spike
        )

        assert forecasts[0].spike_multiplier > 1.0
        assert forecasts[0].spike_multiplier >= forecasts[30].spike_multiplier
        assert forecasts[-1].spike_multiplier == 1.0
        assert any(line.startswith("Spike adjustment: ") for line in forecasts[0].reasoning)

    def test_no_history(self, config: ForecastConfig, as_of: date) -> None:
        """Without history every point is zero with zero confidence."""
        forecasts = generate_ensemble_forecast("SKU-1", [], 3, config, as_of)

        assert len(forecasts) == 3
        assert all(f.final_forecast == 0.0 for f in forecasts)
        assert all(f.confidence == 0.0 for f in forecasts)

    def test_history_after_as_of_ignored(
        self, flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """Sales dated after the origin do not leak into the fit."""
        future = [SalesDataPoint(date=as_of + timedelta(days=i), units=500.0) for i in range(1, 5)]
        forecasts = generate_ensemble_forecast("SKU-1", flat_sales + future, 3, config, as_of)
        assert forecasts[0].base_forecast == pytest.approx(10.0, abs=0.01)

    def test_invalid_horizon(
        self, flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """A non-positive horizon is a programmer error."""
        with pytest.raises(ValueError, match="days_ahead"):
            generate_ensemble_forecast("SKU-1", flat_sales, 0, config, as_of)

    def test_safety_stock_floor_is_a_week(
        self, flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
    ) -> None:
        """Zero demand variance leaves the 7-day floor."""
        forecasts = generate_ensemble_forecast("SKU-1", flat_sales, 1, config, as_of)
        f = forecasts[0]

        assert f.safety_stock == math.ceil(7 * f.final_forecast)
        assert f.recommended_inventory == math.ceil(f.final_forecast + f.safety_stock)


class TestPointSafetyStock:
    """Tests for per-point safety stock."""

    def test_statistical_term_dominates(self, config: ForecastConfig) -> None:
        """High variability exceeds the weekly floor; best sellers use Z=2.33."""
        assert point_safety_stock(20.0, 20.0, 30, config) == math.ceil(2.33 * 20.0 * math.sqrt(30))

    def test_slow_mover_z(self, config: ForecastConfig) -> None:
        """Below 1 unit/day uses the slow-mover Z."""
        assert point_safety_stock(0.5, 2.0, 16, config) == math.ceil(1.28 * 2.0 * 4)

    def test_tier_cutoffs_from_config(self) -> None:
        """Raising the best-seller cutoff drops 20/day to the regular Z."""
        config = ForecastConfig.model_validate({"safety_stock": {"best_seller_daily_units": 25}})

        assert point_safety_stock(20.0, 20.0, 30, config) == math.ceil(1.65 * 20.0 * math.sqrt(30))

    def test_floor_follows_min_days(self) -> None:
        """Steady demand is floored at the configured days of cover."""
        config = ForecastConfig.model_validate({"safety_stock": {"min_days": 14}})

        assert point_safety_stock(5.0, 0.0, 30, config) == 70


class TestAggregatedForecast:
    """Tests for generate_aggregated_forecast."""

    def test_summary(
        self,
        flat_sales: list[SalesDataPoint],
        config: ForecastConfig,
        as_of: date,
        july_event: SeasonalEvent,
    ) -> None:
        """Totals, peak and uplift day count over the horizon."""
        forecasts = generate_ensemble_forecast(
            "SKU-1", flat_sales, 10, config, as_of, events=[july_event]
        )
        aggregate = generate_aggregated_forecast("SKU-1", forecasts, config)

        assert aggregate.days == 10
        assert aggregate.total_forecast == pytest.approx(sum(f.final_forecast for f in forecasts))
        assert aggregate.uplift_days == 5
        assert aggregate.peak_date is not None
        assert date(2024, 7, 1) <= aggregate.peak_date <= date(2024, 7, 5)
        assert any("5 days with" in line for line in aggregate.reasoning)

    def test_uplift_threshold_override(
        self,
        flat_sales: list[SalesDataPoint],
        config: ForecastConfig,
        as_of: date,
        july_event: SeasonalEvent,
    ) -> None:
        """A higher uplift threshold stops counting the event days."""
        forecasts = generate_ensemble_forecast(
            "SKU-1", flat_sales, 10, config, as_of, events=[july_event]
        )
        strict = ForecastConfig.model_validate({"model": {"uplift_threshold": 100.0}})

        assert generate_aggregated_forecast("SKU-1", forecasts, strict).uplift_days == 0

    def test_empty(self, config: ForecastConfig) -> None:
        """An empty horizon aggregates to zeros."""
        aggregate = generate_aggregated_forecast("SKU-1", [], config)
        assert aggregate.total_forecast == 0.0
        assert aggregate.confidence == 0.0


def test_deterministic(
    flat_sales: list[SalesDataPoint], config: ForecastConfig, as_of: date
) -> None:
    """Same inputs produce identical forecasts."""
    counts = np.random.default_rng(3).poisson(10, len(flat_sales))
    noisy = [
        SalesDataPoint(date=p.date, units=float(u))
        for p, u in zip(flat_sales, counts, strict=True)
    ]
    first = generate_ensemble_forecast("SKU-1", noisy, 7, config, as_of)
    second = generate_ensemble_forecast("SKU-1", noisy, 7, config, as_of)
    assert [f.final_forecast for f in first] == [f.final_forecast for f in second]
