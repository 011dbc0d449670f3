"""Tests for forecasting sub-models."""

from datetime import date

import numpy as np
import pytest

from app.features.forecasting.models import (
    AutoRegressiveForecaster,
    DecompositionForecaster,
    ExponentialSmoothingForecaster,
    PatternMatchForecaster,
    build_ensemble_models,
    levinson_durbin,
    model_factory,
)
from app.features.forecasting.schemas import (
    AutoRegressiveModelConfig,
    DecompositionModelConfig,
    ExponentialSmoothingModelConfig,
    PatternMatchModelConfig,
)
from app.features.seasonality.schemas import SeasonalEvent


class TestExponentialSmoothingForecaster:
    """Tests for ExponentialSmoothingForecaster."""

    def test_constant_series(self, sample_constant_series):
        """A constant series forecasts the constant with zero error."""
        model = ExponentialSmoothingForecaster().fit(sample_constant_series)
        forecasts = model.predict(horizon=7)

        np.testing.assert_allclose(forecasts, 100.0)
        assert model.fit_result is not None
        assert model.fit_result.used_fallback is False
        # n=30, cv=0, stable trend
        assert model.confidence == pytest.approx(0.4 * 30 / 90 + 0.4 + 0.2 * 0.9)

    def test_weekly_pattern_reproduced(self, sample_seasonal_series):
        """A clean weekly pattern is reproduced for the next week."""
        model = ExponentialSmoothingForecaster().fit(sample_seasonal_series)
        forecasts = model.predict(horizon=7)

        np.testing.assert_allclose(forecasts, [10, 20, 30, 40, 50, 60, 70], rtol=1e-9)

    def test_short_history_uses_simple_smoothing(self):
        """Fewer than two periods falls back with confidence capped by n/60."""
        y = np.full(10, 5.0)
        model = ExponentialSmoothingForecaster().fit(y)

        np.testing.assert_allclose(model.predict(3), 5.0)
        assert model.fit_result is not None
        assert model.fit_result.used_fallback is True
        assert model.confidence == pytest.approx(10 / 60)

    def test_forecasts_never_negative(self):
        """A steep decline is clamped at zero."""
        y = np.linspace(100, 0, 30)
        forecasts = ExponentialSmoothingForecaster().fit(y).predict(60)
        assert (forecasts >= 0).all()

    def test_optimize_parameters_picks_grid_values(self, sample_seasonal_series):
        """Optimization sets parameters from the grid."""
        model = ExponentialSmoothingForecaster()
        best = model.optimize_parameters(sample_seasonal_series)

        assert best["alpha"] in (0.1, 0.2, 0.3, 0.4, 0.5)
        assert model.get_params()["alpha"] == best["alpha"]

    def test_predict_before_fit_raises(self):
        """Predict before fit raises RuntimeError."""
        with pytest.raises(RuntimeError, match="must be fitted"):
            ExponentialSmoothingForecaster().predict(horizon=5)

    def test_fit_empty_array_raises(self):
        """Fitting on an empty array raises ValueError."""
        with pytest.raises(ValueError, match="empty"):
            ExponentialSmoothingForecaster().fit(np.array([], dtype=np.float64))


class TestDecompositionForecaster:
    """Tests for DecompositionForecaster."""

    def test_linear_trend_extrapolated(self, sample_time_series):
        """A straight line continues past the last observation."""
        model = DecompositionForecaster().fit(sample_time_series)
        forecasts = model.predict(horizon=7)

        assert forecasts[0] == pytest.approx(61.0, abs=3.0)
        assert forecasts[6] > forecasts[0]
        assert model.confidence > 0.5

    def test_short_history_fallback(self):
        """Fewer than 30 points use the recent mean with confidence n/30 * 0.3."""
        y = np.full(20, 8.0)
        model = DecompositionForecaster().fit(y)

        np.testing.assert_allclose(model.predict(5), 8.0, atol=1e-9)
        assert model.confidence == pytest.approx(0.3 * 20 / 30)
        assert model.fit_result is not None
        assert model.fit_result.used_fallback is True

    def test_event_regressor_selected_when_observed(self):
        """An event window inside history becomes a regressor."""
        event = SeasonalEvent(
            name="Spring Push",
            start_month=3,
            start_day=1,
            end_month=3,
            end_day=10,
            base_multiplier=2.0,
        )
        y = np.full(60, 10.0)
        y[28:38] = 25.0
        model = DecompositionForecaster(start_date=date(2024, 2, 2), events=[event]).fit(y)

        assert len(model._event_regressors) == 1

    def test_events_ignored_without_start_date(self):
        """Without a start date, events are not used."""
        event = SeasonalEvent(
            name="Spring Push",
            start_month=3,
            start_day=1,
            end_month=3,
            end_day=10,
            base_multiplier=2.0,
        )
        model = DecompositionForecaster(events=[event]).fit(np.full(60, 10.0))
        assert model._event_regressors == []


class TestAutoRegressiveForecaster:
    """Tests for AutoRegressiveForecaster."""

    def test_linear_series_integrates_drift(self, sample_time_series):
        """Constant differences continue the line."""
        model = AutoRegressiveForecaster().fit(sample_time_series)

        np.testing.assert_allclose(model.predict(3), [61.0, 62.0, 63.0])
        # zero difference variance and zero coefficients
        assert model.confidence == pytest.approx(0.3 * 60 / 180 + 0.4 + 0.3)

    def test_short_history_random_walk(self):
        """Fewer than 44 points use a random walk with drift."""
        y = np.arange(1, 21, dtype=np.float64)
        model = AutoRegressiveForecaster().fit(y)

        np.testing.assert_allclose(model.predict(2), [21.0, 22.0])
        assert model.confidence == pytest.approx(0.3 * 20 / 44)

    def test_coefficients_stable(self):
        """Fitted coefficients keep the recursion stable."""
        rng = np.random.default_rng(42)
        y = 50 + np.cumsum(rng.normal(0, 1, 200))
        model = AutoRegressiveForecaster().fit(y)

        assert np.sum(np.abs(model._phi)) + abs(model._seasonal_phi) < 1.0
        assert np.isfinite(model.predict(90)).all()

    def test_levinson_durbin_ar1(self):
        """AR(1) autocovariances recover phi."""
        phi = 0.6
        autocov = np.array([1.0, phi, phi**2])
        np.testing.assert_allclose(levinson_durbin(autocov, 2), [0.6, 0.0], atol=1e-12)


class TestPatternMatchForecaster:
    """Tests for PatternMatchForecaster."""

    def test_constant_series(self, sample_constant_series):
        """Flat windows match each other and forecast the constant."""
        model = PatternMatchForecaster().fit(sample_constant_series)

        np.testing.assert_allclose(model.predict(5), 100.0)
        assert model.confidence == pytest.approx(0.4 * 30 / 180 + 0.6)

    def test_short_history_fallback(self):
        """Fewer than two sequence lengths fall back."""
        model = PatternMatchForecaster().fit(np.full(20, 4.0))

        assert model.fit_result is not None
        assert model.fit_result.used_fallback is True
        assert (model.predict(7) >= 0).all()

    def test_weekly_pattern_non_negative(self, sample_seasonal_series):
        """Recursive prediction stays non-negative and finite."""
        y = np.tile(sample_seasonal_series, 2)
        forecasts = PatternMatchForecaster().fit(y).predict(14)

        assert len(forecasts) == 14
        assert (forecasts >= 0).all()
        assert np.isfinite(forecasts).all()


class TestPrediction:
    """Tests for BaseForecaster.prediction."""

    def test_daily_confidence_decays(self, sample_constant_series):
        """Daily confidence decays by 0.995 per step."""
        model = ExponentialSmoothingForecaster().fit(sample_constant_series)
        prediction = model.prediction(3)

        assert prediction.model == "exponential_smoothing"
        assert prediction.daily_confidence[1] == pytest.approx(model.confidence * 0.995)
        assert prediction.daily_confidence[2] == pytest.approx(model.confidence * 0.995**2)

    def test_bounds_ordered(self):
        """Lower <= forecast <= upper and lower >= 0."""
        rng = np.random.default_rng(7)
        y = np.maximum(0, 10 + rng.normal(0, 3, 90))
        for model in build_ensemble_models().values():
            prediction = model.fit(y).prediction(14)
            assert prediction.lower_bound >= 0
            assert prediction.lower_bound <= prediction.forecast <= prediction.upper_bound
            assert 0 <= prediction.confidence <= 1

    def test_invalid_horizon(self, sample_constant_series):
        """A horizon below 1 is rejected."""
        model = ExponentialSmoothingForecaster().fit(sample_constant_series)
        with pytest.raises(ValueError, match="horizon"):
            model.prediction(0)


class TestModelFactory:
    """Tests for model_factory."""

    def test_creates_each_model(self):
        """Each config maps to its forecaster."""
        assert isinstance(
            model_factory(ExponentialSmoothingModelConfig(alpha=0.5)),
            ExponentialSmoothingForecaster,
        )
        assert isinstance(model_factory(DecompositionModelConfig()), DecompositionForecaster)
        assert isinstance(model_factory(AutoRegressiveModelConfig()), AutoRegressiveForecaster)
        assert isinstance(model_factory(PatternMatchModelConfig()), PatternMatchForecaster)

    def test_passes_parameters(self):
        """Config values reach the model."""
        model = model_factory(AutoRegressiveModelConfig(p=3, seasonal_lag=14))
        assert model.get_params()["p"] == 3
        assert model.get_params()["seasonal_lag"] == 14

    def test_unknown_config_raises(self):
        """Unknown configs raise ValueError."""
        with pytest.raises(ValueError, match="Unknown model type"):
            model_factory("naive")  # type: ignore[arg-type]

    def test_set_params_unknown_raises(self):
        """Unknown parameters are rejected."""
        with pytest.raises(ValueError, match="Unknown parameter"):
            ExponentialSmoothingForecaster().set_params(delta=0.1)

    def test_ensemble_has_four_members(self):
        """The ensemble builds all four models keyed by type."""
        models = build_ensemble_models()
        assert set(models) == {"prophet", "lstm", "exponential_smoothing", "arima"}
