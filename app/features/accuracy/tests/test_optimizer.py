"""Tests for backtests and ensemble weight learning."""

from collections.abc import Callable
from datetime import date, timedelta

import pytest

from app.core.config import ForecastConfig
from app.features.accuracy.optimizer import (
    calculate_ensemble_mape,
    compare_model_performance,
    optimize_model_weights,
    propose_weights,
    run_backtest,
)
from app.features.accuracy.schemas import ModelAccuracy
from app.features.forecasting.models import MODEL_TYPES
from app.features.forecasting.schemas import ModelWeights
from app.shared.schemas import SalesDataPoint


class TestRunBacktest:
    """Tests for rolling-origin backtests."""

    def test_insufficient_history(
        self, short_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Fewer than 90 days cannot be backtested."""
        assert run_backtest("SKU-1", short_sales, "exponential_smoothing", config) is None

    def test_window_layout(
        self, weekly_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """120 days give three 30-day windows after the first 30 training days."""
        result = run_backtest("SKU-1", weekly_sales, "exponential_smoothing", config)

        assert result is not None
        assert result.num_windows == 3
        assert len(result.points) == 90
        assert result.period_start == date(2024, 1, 31)
        assert result.period_end == date(2024, 4, 29)
        assert result.points[0].date == result.period_start
        assert result.accuracy.sample_size == 90

    def test_windows_capped(self, config: ForecastConfig) -> None:
        """The window count never exceeds max_windows."""
        capped = config.model_copy(
            update={"accuracy": config.accuracy.model_copy(update={"max_windows": 2})}
        )
        sales = [
            SalesDataPoint(date=date(2024, 1, 1) + timedelta(days=i), units=10.0)
            for i in range(150)
        ]

        result = run_backtest("SKU-1", sales, "arima", capped)

        assert result is not None
        assert result.num_windows == 2
        assert len(result.points) == 60


class TestProposeWeights:
    """Tests for inverse-MAPE weight proposals."""

    def test_inverse_mape_weights(
        self, config: ForecastConfig, make_accuracy: Callable[..., ModelAccuracy]
    ) -> None:
        """Models with MAPE >= 1 drop to the floor; the rest share by inverse MAPE."""
        accuracies = [
            make_accuracy("prophet", 0.1),
            make_accuracy("lstm", 0.1),
            make_accuracy("exponential_smoothing", 0.1),
            make_accuracy("arima", 2.0),
        ]

        weights = propose_weights(accuracies, config)

        assert weights["prophet"] == pytest.approx((1 / 3) / 1.01)
        assert weights["lstm"] == pytest.approx((1 / 3) / 1.01)
        assert weights["exponential_smoothing"] == pytest.approx((1 / 3) / 1.01)
        assert weights["arima"] == pytest.approx(0.01 / 1.01)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_no_usable_model_gives_equal_weights(
        self, config: ForecastConfig, make_accuracy: Callable[..., ModelAccuracy]
    ) -> None:
        """All models at MAPE >= 1 share the weight equally."""
        accuracies = [make_accuracy(m, 1.5) for m in MODEL_TYPES]
        weights = propose_weights(accuracies, config)

        assert all(w == pytest.approx(0.25) for w in weights.values())

    def test_weight_floor(
        self, config: ForecastConfig, make_accuracy: Callable[..., ModelAccuracy]
    ) -> None:
        """No model drops below the floor before renormalizing."""
        accuracies = [make_accuracy("prophet", 0.01)] + [
            make_accuracy(m, 1.5) for m in MODEL_TYPES if m != "prophet"
        ]
        weights = propose_weights(accuracies, config)

        assert weights["prophet"] == pytest.approx(1.0 / 1.03)
        assert weights["arima"] == pytest.approx(0.01 / 1.03)
        assert min(weights.values()) > 0


class TestOptimizeModelWeights:
    """Tests for one weight-learning step."""

    def test_short_history_skipped(
        self, short_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """No result without enough history to backtest."""
        assert optimize_model_weights("SKU-1", short_sales, None, config) is None

    def test_first_learning_always_saves(
        self, weekly_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Without stored weights the proposal is saved and defaults are the baseline."""
        result = optimize_model_weights("SKU-1", weekly_sales, None, config)

        assert result is not None
        assert result.should_save is True
        assert result.persisted is False
        assert result.previous_weights.as_dict() == config.model.default_weights
        assert len(result.model_accuracies) == 4
        assert sum(result.weights.as_dict().values()) == pytest.approx(1.0)
        assert result.weights.overall_mape == pytest.approx(result.new_mape)
        assert result.weights.last_updated is not None

    def test_stored_weights_saved_unless_worse(
        self, weekly_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """With a recorded MAPE the proposal is saved unless it does worse."""
        stored = ModelWeights(sku="SKU-1", overall_mape=0.2)

        result = optimize_model_weights("SKU-1", weekly_sales, stored, config)

        assert result is not None
        assert result.improved == (result.new_mape < result.previous_mape)
        assert result.should_save == (result.new_mape <= result.previous_mape)

    def test_rerun_is_idempotent(
        self, weekly_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Relearning from the stored result on the same history changes nothing."""
        first = optimize_model_weights("SKU-1", weekly_sales, None, config)
        assert first is not None

        second = optimize_model_weights("SKU-1", weekly_sales, first.weights, config)

        assert second is not None
        assert second.weights.as_dict() == pytest.approx(first.weights.as_dict())
        assert second.new_mape == pytest.approx(first.new_mape)
        assert second.previous_mape == pytest.approx(second.new_mape)
        assert second.improved is False
        assert second.should_save is True


class TestHoldoutComparisons:
    """Tests for holdout ensemble MAPE and model comparison."""

    def test_ensemble_mape_short_history(
        self, short_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Too little history scores the worst MAPE."""
        weights = ModelWeights.equal("SKU-1")

        assert calculate_ensemble_mape(short_sales, weights, config) == 1.0

    def test_ensemble_mape_accepts_mapping(
        self, weekly_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Plain weight mappings are accepted."""
        mape = calculate_ensemble_mape(weekly_sales, config.model.default_weights, config)

        assert mape >= 0.0

    def test_compare_short_history_reports_zeros(
        self, short_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Every model is listed with zero MAPE and no samples."""
        comparisons = compare_model_performance(short_sales, config)

        assert [c.model for c in comparisons] == list(MODEL_TYPES)
        assert all(c.mape == 0.0 and c.sample_size == 0 for c in comparisons)

    def test_compare_models(
        self, weekly_sales: list[SalesDataPoint], config: ForecastConfig
    ) -> None:
        """Each model is scored on the validation window."""
        comparisons = compare_model_performance(weekly_sales, config, validation_days=14)

        assert {c.model for c in comparisons} <= set(MODEL_TYPES)
        assert all(c.sample_size == 14 for c in comparisons)
