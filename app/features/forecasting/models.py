"""Demand sub-models with a unified scikit-learn-style interface.

All forecasters implement a common interface:
- fit(y, X=None) -> self
- predict(horizon, X=None) -> np.ndarray
- get_params() -> dict
- set_params(**params) -> self
- prediction(horizon) -> ModelPrediction

Every model falls back to a simpler estimator when history is short, clamps
forecasts at zero, and reports a confidence in [0, 1] computed at fit time.

CRITICAL: All implementations must be deterministic with fixed random_state.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date as date_type
from datetime import timedelta
from itertools import product
from typing import Any, ClassVar, Literal

import numpy as np

from app.features.forecasting.schemas import (
    AutoRegressiveModelConfig,
    DecompositionModelConfig,
    ExponentialSmoothingModelConfig,
    ModelConfig,
    ModelFactors,
    ModelPrediction,
    PatternMatchModelConfig,
)
from app.features.seasonality.schemas import SeasonalEvent
from app.features.seasonality.windows import is_date_in_event
from app.shared.utils import coefficient_of_variation

ModelType = Literal["prophet", "lstm", "exponential_smoothing", "arima"]

MODEL_TYPES: tuple[ModelType, ...] = ("prophet", "lstm", "exponential_smoothing", "arima")

MODEL_DISPLAY_NAMES: dict[str, str] = {
    "prophet": "Prophet",
    "lstm": "LSTM",
    "exponential_smoothing": "Exponential Smoothing",
    "arima": "ARIMA",
}

EPSILON = 1e-10
Z_95 = 1.96
DAILY_CONFIDENCE_DECAY = 0.995

_Array = np.ndarray[Any, np.dtype[np.floating[Any]]]


@dataclass
class FitResult:
    """Result of model fitting.

    Attributes:
        fitted: Whether the model was successfully fitted.
        n_observations: Number of observations used for fitting.
        used_fallback: Whether the short-history estimator was used.
        metrics: Dictionary of training metrics (e.g., {"error_std": 1.23}).
    """

    fitted: bool
    n_observations: int
    used_fallback: bool
    metrics: dict[str, float] = field(default_factory=lambda: {})


class BaseForecaster(ABC):
    """Abstract base class for all sub-models.

    CRITICAL: All implementations must be deterministic with fixed random_state.

    Subclasses set ``_confidence``, ``_error_std`` and ``_factors`` in fit();
    the base class turns them into interval bounds and a ModelPrediction.

    Attributes:
        random_state: Random seed for reproducibility.
        model_type: Ensemble key of the model.
        widening_days: Horizon scale at which the interval has grown by sqrt(2).
    """

    model_type: ClassVar[ModelType]
    widening_days: ClassVar[float] = 30.0

    def __init__(self, random_state: int = 42) -> None:
        """Initialize the forecaster.

        Args:
            random_state: Random seed for reproducibility.
        """
        self.random_state = random_state
        self._is_fitted = False
        self._n_obs = 0
        self._confidence = 0.0
        self._error_std = 0.0
        self._factors = ModelFactors(base=0.0, trend=0.0, seasonality=1.0)
        self._fit_result: FitResult | None = None

    @abstractmethod
    def fit(
        self,
        y: np.ndarray[Any, np.dtype[np.floating[Any]]],
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,
    ) -> BaseForecaster:
        """Fit the model on historical data.

        Args:
            y: Daily units (1D array of shape [n_samples]), oldest first.
            X: Unused; kept for interface compatibility.

        Returns:
            self (for method chaining).

        Raises:
            ValueError: If y is empty.
        """

    @abstractmethod
    def predict(
        self, horizon: int, X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None
    ) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
        """Generate non-negative forecasts for the specified horizon.

        Args:
            horizon: Number of days to forecast.
            X: Unused; kept for interface compatibility.

        Returns:
            Array of forecasts with shape [horizon].

        Raises:
            RuntimeError: If model has not been fitted.
        """

    @abstractmethod
    def get_params(self) -> dict[str, Any]:
        """Get model parameters (scikit-learn convention).

        Returns:
            Dictionary of parameter names to values.
        """

    def set_params(self, **params: Any) -> BaseForecaster:  # noqa: ANN401
        """Set model parameters (scikit-learn convention).

        Args:
            **params: Parameter names and values to set.

        Returns:
            self (for method chaining).

        Raises:
            ValueError: If a parameter is unknown.
        """
        valid = self.get_params()
        for key, value in params.items():
            if key not in valid:
                raise ValueError(f"Unknown parameter for {self.model_type}: {key}")
            setattr(self, key, value)
        return self

    @property
    def is_fitted(self) -> bool:
        """Check if the model has been fitted.

        Returns:
            True if fit() has been called successfully.
        """
        return self._is_fitted

    @property
    def confidence(self) -> float:
        """Fit-time confidence in [0, 1]."""
        return self._confidence

    @property
    def fit_result(self) -> FitResult | None:
        """Details of the last fit."""
        return self._fit_result

    def _check_fitted(self) -> None:
        if not self._is_fitted:
            raise RuntimeError("Model must be fitted before predict")

    def _finish_fit(self, n: int, used_fallback: bool) -> None:
        self._n_obs = n
        self._confidence = float(min(1.0, max(0.0, self._confidence)))
        self._is_fitted = True
        self._fit_result = FitResult(
            fitted=True,
            n_observations=n,
            used_fallback=used_fallback,
            metrics={"error_std": self._error_std, "confidence": self._confidence},
        )

    def interval_half_widths(self, horizon: int) -> _Array:
        """95% half-widths per step, growing with the square root of the horizon."""
        steps = np.arange(1, horizon + 1, dtype=np.float64)
        return Z_95 * self._error_std * np.sqrt(1.0 + steps / self.widening_days)

    def prediction(self, horizon: int) -> ModelPrediction:
        """Forecast the horizon and package it as a ModelPrediction.

        Args:
            horizon: Number of days to forecast.

        Returns:
            Horizon-average forecast and bounds plus the per-day path.
        """
        if horizon < 1:
            raise ValueError(f"horizon must be >= 1, got {horizon}")
        daily = self.predict(horizon)
        half = self.interval_half_widths(horizon)
        lower = np.maximum(0.0, daily - half)
        upper = daily + half
        daily_confidence = [
            self._confidence * DAILY_CONFIDENCE_DECAY**i for i in range(horizon)
        ]
        return ModelPrediction(
            model=self.model_type,
            forecast=float(np.mean(daily)),
            confidence=self._confidence,
            upper_bound=float(np.mean(upper)),
            lower_bound=float(np.mean(lower)),
            factors=self._factors,
            daily=[float(v) for v in daily],
            daily_lower=[float(v) for v in lower],
            daily_upper=[float(v) for v in upper],
            daily_confidence=daily_confidence,
            used_fallback=bool(self._fit_result and self._fit_result.used_fallback),
        )


def _as_array(y: Any) -> _Array:  # noqa: ANN401
    arr = np.asarray(y, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"y must be 1-dimensional, got shape {arr.shape}")
    if len(arr) == 0:
        raise ValueError("Cannot fit on empty array")
    return arr


def _recent_trend(y: _Array, window: int = 7) -> float:
    """Daily slope from the last window vs the window before it."""
    if len(y) <= window:
        return 0.0
    recent = y[-window:]
    older = y[-2 * window : -window]
    return float(np.mean(recent) - np.mean(older)) / window


# =============================================================================
# Exponential Smoothing
# =============================================================================


class ExponentialSmoothingForecaster(BaseForecaster):
    """Holt-Winters: additive trend, multiplicative seasonality.

    Update equations for period p at step t:
        level_t  = alpha * y_t / s_{t-p} + (1 - alpha) * (level_{t-1} + trend_{t-1})
        trend_t  = beta * (level_t - level_{t-1}) + (1 - beta) * trend_{t-1}
        s_t      = gamma * y_t / level_t + (1 - gamma) * s_{t-p}

    Forecast: y_hat[n+h] = (level + h * trend) * s[(n + h - 1) mod p]

    Fewer than two full periods falls back to simple exponential smoothing
    plus a half-weighted week-over-week trend, with confidence capped at 0.6.
    """

    model_type: ClassVar[ModelType] = "exponential_smoothing"

    def __init__(
        self,
        alpha: float = 0.3,
        beta: float = 0.1,
        gamma: float = 0.2,
        season_length: int = 7,
        random_state: int = 42,
    ) -> None:
        """Initialize the smoother.

        Args:
            alpha: Level smoothing factor.
            beta: Trend smoothing factor.
            gamma: Seasonal smoothing factor.
            season_length: Seasonal period in days.
            random_state: Random seed (unused but kept for interface).
        """
        super().__init__(random_state)
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.season_length = season_length
        self._level = 0.0
        self._trend = 0.0
        self._seasonal: _Array = np.ones(season_length, dtype=np.float64)
        self._simple = False

    def fit(
        self,
        y: np.ndarray[Any, np.dtype[np.floating[Any]]],
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> ExponentialSmoothingForecaster:
        """Fit level, trend and seasonal indices.

        Args:
            y: Daily units, oldest first.
            X: Ignored.

        Returns:
            self (for method chaining).
        """
        y = _as_array(y)
        n = len(y)
        if n < 2 * self.season_length:
            self._fit_simple(y)
        else:
            self._fit_holt_winters(y)
        self._factors = ModelFactors(
            base=self._level,
            trend=self._trend,
            seasonality=float(np.mean(self._seasonal)),
        )
        self._finish_fit(n, used_fallback=self._simple)
        return self

    def _fit_simple(self, y: _Array) -> None:
        level = float(y[0])
        for value in y[1:]:
            level = self.alpha * float(value) + (1 - self.alpha) * level
        self._level = level
        self._trend = _recent_trend(y)
        self._seasonal = np.ones(self.season_length, dtype=np.float64)
        self._simple = True
        self._confidence = min(0.6, len(y) / 60)
        self._error_std = float(np.std(y))

    def _fit_holt_winters(self, y: _Array) -> None:
        level, trend, seasonal, errors = self._run_filter(y, self.alpha, self.beta, self.gamma)
        self._level = level
        self._trend = trend
        self._seasonal = seasonal
        self._simple = False
        self._error_std = float(np.std(errors)) if len(errors) else float(np.std(y))

        n = len(y)
        cv = coefficient_of_variation(y)
        trend_stable = abs(trend) < 0.1 * abs(level)
        self._confidence = (
            0.4 * min(1.0, n / 90) + 0.4 * max(0.0, 1 - cv) + 0.2 * (0.9 if trend_stable else 0.7)
        )

    def _run_filter(
        self, y: _Array, alpha: float, beta: float, gamma: float
    ) -> tuple[float, float, _Array, _Array]:
        """Initialize from the first two periods and run the update loop.

        Returns:
            Tuple of (level, trend, seasonal indices, one-step-ahead errors).
        """
        p = self.season_length
        n = len(y)
        level = float(np.mean(y[:p]))
        trend = float(np.mean(y[p : 2 * p]) - level) / p

        if level > EPSILON:
            seasonal = np.array([np.mean(y[i::p]) / level for i in range(p)], dtype=np.float64)
        else:
            seasonal = np.ones(p, dtype=np.float64)
        total = float(seasonal.sum())
        seasonal = seasonal * p / total if total > EPSILON else np.ones(p, dtype=np.float64)

        errors = np.zeros(n - p, dtype=np.float64)
        for t in range(p, n):
            idx = t % p
            s = float(seasonal[idx])
            errors[t - p] = y[t] - (level + trend) * s
            prev_level = level
            level = alpha * y[t] / max(s, EPSILON) + (1 - alpha) * (level + trend)
            trend = beta * (level - prev_level) + (1 - beta) * trend
            if level > EPSILON:
                seasonal[idx] = gamma * y[t] / level + (1 - gamma) * s
        return level, trend, seasonal, errors

    def predict(
        self,
        horizon: int,
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
        """Project level and trend, scaled by the seasonal index of each day."""
        self._check_fitted()
        steps = np.arange(1, horizon + 1, dtype=np.float64)
        if self._simple:
            values = self._level + self._trend * steps / 2
        else:
            idx = (self._n_obs + np.arange(horizon)) % self.season_length
            values = (self._level + steps * self._trend) * self._seasonal[idx]
        return np.maximum(0.0, values)

    def optimize_parameters(
        self, y: np.ndarray[Any, np.dtype[np.floating[Any]]]
    ) -> dict[str, float]:
        """Grid-search alpha/beta/gamma by one-step mean absolute error.

        Sets the best parameters on the instance. Short histories keep the
        current parameters.

        Returns:
            The chosen parameters.
        """
        y = _as_array(y)
        best = {"alpha": self.alpha, "beta": self.beta, "gamma": self.gamma}
        if len(y) < 2 * self.season_length + 1:
            return best

        best_mae = math.inf
        for alpha, beta, gamma in product(
            (0.1, 0.2, 0.3, 0.4, 0.5), (0.05, 0.1, 0.2), (0.1, 0.2, 0.3)
        ):
            errors = self._run_filter(y, alpha, beta, gamma)[3]
            mae = float(np.mean(np.abs(errors)))
            if mae < best_mae - EPSILON:
                best_mae = mae
                best = {"alpha": alpha, "beta": beta, "gamma": gamma}
        self.set_params(**best)
        return best

    def get_params(self) -> dict[str, Any]:
        """Get model parameters."""
        return {
            "alpha": self.alpha,
            "beta": self.beta,
            "gamma": self.gamma,
            "season_length": self.season_length,
            "random_state": self.random_state,
        }


# =============================================================================
# Decomposition ("prophet")
# =============================================================================


class DecompositionForecaster(BaseForecaster):
    """Additive decomposition fitted by ridge regression.

    y(t) = trend(t) + weekly(t) + yearly(t) + events(t)

    - trend: intercept + slope + hinge terms at changepoints spread over the
      first 80% of history
    - weekly / yearly: Fourier terms (yearly only with 365+ points)
    - events: one indicator per seasonal event window observed in history

    Confidence = 0.3 * data sufficiency + 0.4 * R^2 + 0.3 * residual stability.
    """

    model_type: ClassVar[ModelType] = "prophet"
    min_points: ClassVar[int] = 30
    yearly_min_points: ClassVar[int] = 365

    def __init__(
        self,
        weekly_order: int = 3,
        yearly_order: int = 10,
        n_changepoints: int = 10,
        ridge_lambda: float = 0.1,
        start_date: date_type | None = None,
        events: Sequence[SeasonalEvent] = (),
        random_state: int = 42,
    ) -> None:
        """Initialize the decomposition model.

        Args:
            weekly_order: Fourier order of the weekly component.
            yearly_order: Fourier order of the yearly component.
            n_changepoints: Maximum number of trend changepoints.
            ridge_lambda: L2 penalty on all coefficients but the intercept.
            start_date: Date of y[0]; required for event regressors.
            events: Seasonal events to use as regressors.
            random_state: Random seed (unused but kept for interface).
        """
        super().__init__(random_state)
        self.weekly_order = weekly_order
        self.yearly_order = yearly_order
        self.n_changepoints = n_changepoints
        self.ridge_lambda = ridge_lambda
        self.start_date = start_date
        self.events = tuple(events)
        self._scale = 1.0
        self._changepoints: _Array = np.zeros(0, dtype=np.float64)
        self._use_yearly = False
        self._event_regressors: list[SeasonalEvent] = []
        self._coef: _Array = np.zeros(0, dtype=np.float64)
        self._fallback_level = 0.0
        self._fallback_slope = 0.0
        self._fallback = False

    def fit(
        self,
        y: np.ndarray[Any, np.dtype[np.floating[Any]]],
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> DecompositionForecaster:
        """Fit the trend, seasonal and event components.

        Args:
            y: Daily units, oldest first.
            X: Ignored.

        Returns:
            self (for method chaining).
        """
        y = _as_array(y)
        n = len(y)
        if n < self.min_points:
            self._fit_fallback(y)
            self._finish_fit(n, used_fallback=True)
            return self

        self._fallback = False
        self._scale = float(n)
        n_cp = min(self.n_changepoints, n // 30)
        self._changepoints = np.linspace(0.0, 0.8, n_cp + 2)[1:-1]
        self._use_yearly = n >= self.yearly_min_points and self.yearly_order > 0
        self._event_regressors = self._select_event_regressors(n)

        t = np.arange(n, dtype=np.float64)
        design = self._design(t)
        penalty = self.ridge_lambda * np.eye(design.shape[1])
        penalty[0, 0] = 0.0
        self._coef = np.linalg.solve(design.T @ design + penalty, design.T @ y)

        fitted = design @ self._coef
        residuals = y - fitted
        ss_res = float(np.sum(residuals**2))
        ss_tot = float(np.sum((y - np.mean(y)) ** 2))
        r_squared = 1.0 - ss_res / ss_tot if ss_tot > EPSILON else 1.0
        r_squared = min(1.0, max(0.0, r_squared))
        mean = float(np.mean(y))
        residual_std = float(np.std(residuals))
        stability = max(0.0, 1 - residual_std / mean) if mean > 0 else 0.0

        self._error_std = residual_std
        self._confidence = 0.3 * min(1.0, n / 180) + 0.4 * r_squared + 0.3 * stability

        trend_end = self._trend_component(np.array([n - 1], dtype=np.float64))[0]
        slope = (float(self._coef[1]) + float(np.sum(self._coef[2 : 2 + n_cp]))) / self._scale
        recent_fit = float(np.mean(fitted[-7:]))
        self._factors = ModelFactors(
            base=float(trend_end),
            trend=slope,
            seasonality=recent_fit / trend_end if trend_end > EPSILON else 1.0,
        )
        self._finish_fit(n, used_fallback=False)
        return self

    def _fit_fallback(self, y: _Array) -> None:
        window = y[-14:]
        m = len(window)
        if m >= 2:
            slope, intercept = np.polyfit(np.arange(m, dtype=np.float64), window, 1)
        else:
            slope, intercept = 0.0, float(window[0])
        self._fallback = True
        self._fallback_slope = float(slope)
        self._fallback_level = float(intercept + slope * (m - 1))
        self._error_std = float(np.std(window))
        self._confidence = 0.3 * min(1.0, len(y) / self.min_points)
        self._factors = ModelFactors(
            base=float(np.mean(window)), trend=self._fallback_slope, seasonality=1.0
        )

    def _select_event_regressors(self, n: int) -> list[SeasonalEvent]:
        if self.start_date is None:
            return []
        dates = [self.start_date + timedelta(days=i) for i in range(n)]
        selected: list[SeasonalEvent] = []
        for event in self.events:
            if not event.is_active:
                continue
            inside = sum(1 for d in dates if is_date_in_event(d, event))
            if 0 < inside < n:
                selected.append(event)
        return selected

    def _trend_component(self, t: _Array) -> _Array:
        ts = t / self._scale
        value = self._coef[0] + self._coef[1] * ts
        for i, cp in enumerate(self._changepoints):
            value = value + self._coef[2 + i] * np.maximum(0.0, ts - cp)
        return np.asarray(value, dtype=np.float64)

    def _design(self, t: _Array) -> _Array:
        ts = t / self._scale
        columns: list[_Array] = [np.ones_like(t), ts]
        columns.extend(np.maximum(0.0, ts - cp) for cp in self._changepoints)
        for k in range(1, self.weekly_order + 1):
            angle = 2 * np.pi * k * t / 7.0
            columns.extend((np.sin(angle), np.cos(angle)))
        if self._use_yearly:
            for k in range(1, self.yearly_order + 1):
                angle = 2 * np.pi * k * t / 365.25
                columns.extend((np.sin(angle), np.cos(angle)))
        if self._event_regressors and self.start_date is not None:
            start = self.start_date
            for event in self._event_regressors:
                columns.append(
                    np.array(
                        [
                            1.0 if is_date_in_event(start + timedelta(days=int(i)), event) else 0.0
                            for i in t
                        ],
                        dtype=np.float64,
                    )
                )
        return np.column_stack(columns)

    def predict(
        self,
        horizon: int,
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
        """Evaluate the fitted components on future days."""
        self._check_fitted()
        steps = np.arange(1, horizon + 1, dtype=np.float64)
        if self._fallback:
            return np.maximum(0.0, self._fallback_level + self._fallback_slope * steps)
        t = self._n_obs - 1 + steps
        return np.maximum(0.0, self._design(t) @ self._coef)

    def get_params(self) -> dict[str, Any]:
        """Get model parameters."""
        return {
            "weekly_order": self.weekly_order,
            "yearly_order": self.yearly_order,
            "n_changepoints": self.n_changepoints,
            "ridge_lambda": self.ridge_lambda,
            "start_date": self.start_date,
            "events": self.events,
            "random_state": self.random_state,
        }


# =============================================================================
# Autoregressive ("arima")
# =============================================================================


def levinson_durbin(autocov: _Array, order: int) -> _Array:
    """Solve the Yule-Walker equations for AR coefficients.

    Args:
        autocov: Autocovariances r[0..order].
        order: AR order.

    Returns:
        Coefficients phi[0..order-1] for lags 1..order. Zeros when r[0] is 0.
    """
    phi = np.zeros(order, dtype=np.float64)
    error = float(autocov[0])
    if error <= EPSILON:
        return phi
    for k in range(order):
        acc = float(autocov[k + 1]) - sum(phi[j] * autocov[k - j] for j in range(k))
        reflection = acc / error
        updated = phi.copy()
        updated[k] = reflection
        for j in range(k):
            updated[j] = phi[j] - reflection * phi[k - 1 - j]
        phi = updated
        error *= 1 - reflection**2
        if error <= EPSILON:
            break
    return phi


def _autocovariance(x: _Array, max_lag: int) -> _Array:
    n = len(x)
    return np.array(
        [float(np.sum(x[k:] * x[: n - k])) / n if k < n else 0.0 for k in range(max_lag + 1)],
        dtype=np.float64,
    )


class AutoRegressiveForecaster(BaseForecaster):
    """ARIMA-style model: AR(p) on first differences with a seasonal AR term.

    z_t = y_t - y_{t-1} - mu
    z_t = sum_i phi_i * z_{t-i} + Phi * z_{t-s} + e_t

    phi comes from Levinson-Durbin; Phi is the regression of the AR residual
    on z_{t-s}, shrunk so the combined recursion stays stable. Forecasts are
    integrated back from the last observed value.

    Short histories fall back to a random walk with drift.
    """

    model_type: ClassVar[ModelType] = "arima"
    widening_days: ClassVar[float] = 14.0

    def __init__(self, p: int = 2, seasonal_lag: int = 7, random_state: int = 42) -> None:
        """Initialize the autoregressive model.

        Args:
            p: Non-seasonal AR order.
            seasonal_lag: Seasonal lag in days.
            random_state: Random seed (unused but kept for interface).
        """
        super().__init__(random_state)
        self.p = p
        self.seasonal_lag = seasonal_lag
        self._phi: _Array = np.zeros(p, dtype=np.float64)
        self._seasonal_phi = 0.0
        self._mu = 0.0
        self._last_value = 0.0
        self._history: _Array = np.zeros(0, dtype=np.float64)
        self._fallback = False

    @property
    def min_points(self) -> int:
        """Smallest history fitted with the full model."""
        return 2 * max(self.p, self.seasonal_lag) + 30

    def fit(
        self,
        y: np.ndarray[Any, np.dtype[np.floating[Any]]],
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> AutoRegressiveForecaster:
        """Fit AR coefficients on the differenced series.

        Args:
            y: Daily units, oldest first.
            X: Ignored.

        Returns:
            self (for method chaining).
        """
        y = _as_array(y)
        n = len(y)
        self._last_value = float(y[-1])

        if n < self.min_points:
            self._fallback = True
            self._mu = float(y[-1] - y[0]) / (n - 1) if n > 1 else 0.0
            diffs = np.diff(y)
            self._error_std = float(np.std(diffs)) if len(diffs) else 0.0
            self._confidence = 0.3 * min(1.0, n / self.min_points)
            self._factors = ModelFactors(base=self._last_value, trend=self._mu, seasonality=1.0)
            self._finish_fit(n, used_fallback=True)
            return self

        self._fallback = False
        z = np.diff(y)
        self._mu = float(np.mean(z))
        zc = z - self._mu
        self._phi = levinson_durbin(_autocovariance(zc, self.p), self.p)

        s = self.seasonal_lag
        start = max(self.p, s)
        ar_fit = np.array(
            [
                sum(self._phi[i] * zc[t - 1 - i] for i in range(self.p))
                for t in range(start, len(zc))
            ],
            dtype=np.float64,
        )
        ar_resid = zc[start:] - ar_fit
        lagged = zc[start - s : len(zc) - s]
        denom = float(np.sum(lagged**2))
        seasonal_phi = float(np.sum(ar_resid * lagged)) / denom if denom > EPSILON else 0.0
        seasonal_phi = max(-0.9, min(0.9, seasonal_phi))
        headroom = max(0.0, 0.99 - float(np.sum(np.abs(self._phi))))
        self._seasonal_phi = math.copysign(min(abs(seasonal_phi), headroom), seasonal_phi)

        residuals = ar_resid - self._seasonal_phi * lagged
        self._error_std = float(np.std(residuals)) if len(residuals) else float(np.std(z))
        self._history = zc

        var_y = float(np.var(y))
        stationarity = min(1.0, float(np.var(z)) / var_y) if var_y > EPSILON else 1.0
        max_coef = max(float(np.max(np.abs(self._phi))), abs(self._seasonal_phi))
        stability = max(0.0, 1 - max_coef)
        self._confidence = (
            0.3 * min(1.0, n / 180) + 0.4 * (1 - stationarity) + 0.3 * stability
        )
        self._factors = ModelFactors(base=self._last_value, trend=self._mu, seasonality=1.0)
        self._finish_fit(n, used_fallback=False)
        return self

    def predict(
        self,
        horizon: int,
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
        """Recursively forecast differences and integrate them.

        CRITICAL: Predictions at t+k become inputs for predictions at t+k+1.
        """
        self._check_fitted()
        steps = np.arange(1, horizon + 1, dtype=np.float64)
        if self._fallback:
            return np.maximum(0.0, self._last_value + self._mu * steps)

        history = list(self._history)
        diffs = np.zeros(horizon, dtype=np.float64)
        for h in range(horizon):
            value = sum(self._phi[i] * history[-1 - i] for i in range(self.p))
            value += self._seasonal_phi * history[-self.seasonal_lag]
            history.append(value)
            diffs[h] = value + self._mu
        return np.maximum(0.0, self._last_value + np.cumsum(diffs))

    def get_params(self) -> dict[str, Any]:
        """Get model parameters."""
        return {"p": self.p, "seasonal_lag": self.seasonal_lag, "random_state": self.random_state}


# =============================================================================
# Pattern Matching ("lstm")
# =============================================================================


class PatternMatchForecaster(BaseForecaster):
    """Sequence model that attends over a library of historical windows.

    Each library entry is a z-normalized window of ``sequence_length`` days and
    the normalized value that followed it. A query window is matched by cosine
    similarity; entries at or above ``match_threshold`` vote with attention

        similarity * recency_weight * (1 + attention_decay ** age)

    When nothing matches, the window mean scaled by the weekday multiplier plus
    a decaying week-over-week trend is used instead.
    """

    model_type: ClassVar[ModelType] = "lstm"

    def __init__(
        self,
        sequence_length: int = 14,
        num_patterns: int = 100,
        attention_decay: float = 0.95,
        match_threshold: float = 0.7,
        random_state: int = 42,
    ) -> None:
        """Initialize the pattern matcher.

        Args:
            sequence_length: Length of matched windows.
            num_patterns: Most recent windows kept in the library.
            attention_decay: Recency decay of the attention boost.
            match_threshold: Minimum cosine similarity.
            random_state: Random seed (unused but kept for interface).
        """
        super().__init__(random_state)
        self.sequence_length = sequence_length
        self.num_patterns = num_patterns
        self.attention_decay = attention_decay
        self.match_threshold = match_threshold
        self._windows: _Array = np.zeros((0, sequence_length), dtype=np.float64)
        self._outcomes: _Array = np.zeros(0, dtype=np.float64)
        self._attention_prior: _Array = np.zeros(0, dtype=np.float64)
        self._weekday_factors: _Array = np.ones(7, dtype=np.float64)
        self._trend = 0.0
        self._tail: _Array = np.zeros(0, dtype=np.float64)

    @staticmethod
    def _normalize(window: _Array) -> tuple[_Array, float, float]:
        mean = float(np.mean(window))
        std = float(np.std(window))
        scale = std if std > EPSILON else 1.0
        return (window - mean) / scale, mean, scale

    def fit(
        self,
        y: np.ndarray[Any, np.dtype[np.floating[Any]]],
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> PatternMatchForecaster:
        """Build the pattern library from sliding windows.

        Args:
            y: Daily units, oldest first.
            X: Ignored.

        Returns:
            self (for method chaining).
        """
        y = _as_array(y)
        n = len(y)
        length = self.sequence_length
        self._trend = _recent_trend(y)
        overall = float(np.mean(y))
        self._weekday_factors = np.array(
            [
                float(np.mean(y[k::7])) / overall if overall > EPSILON and len(y[k::7]) else 1.0
                for k in range(7)
            ],
            dtype=np.float64,
        )
        self._tail = y[-length:].copy()

        if n < 2 * length:
            self._windows = np.zeros((0, length), dtype=np.float64)
            self._outcomes = np.zeros(0, dtype=np.float64)
            self._error_std = float(np.std(y))
            self._confidence = 0.3 * min(1.0, n / (2 * length))
            self._factors = ModelFactors(
                base=float(np.mean(y[-7:])), trend=self._trend, seasonality=1.0
            )
            self._finish_fit(n, used_fallback=True)
            return self

        starts = range(max(length, n - self.num_patterns), n)
        windows: list[_Array] = []
        outcomes: list[float] = []
        for t in starts:
            normalized, mean, scale = self._normalize(y[t - length : t])
            windows.append(normalized)
            outcomes.append((float(y[t]) - mean) / scale)
        self._windows = np.vstack(windows)
        self._outcomes = np.array(outcomes, dtype=np.float64)

        m = len(self._outcomes)
        recency = 0.5 + 0.5 * np.arange(m) / (m - 1) if m > 1 else np.ones(1)
        age = (m - 1) - np.arange(m)
        self._attention_prior = recency * (1 + self.attention_decay**age)

        # Leave-one-out one-step errors on the most recent entries
        errors = []
        for j in range(max(0, m - 14), m):
            t = starts[j]
            match = self._match(y[t - length : t], exclude=j)
            if match is not None:
                errors.append(float(y[t]) - match[0])
        self._error_std = float(np.std(errors)) if len(errors) >= 2 else float(np.std(y))

        query = self._match(self._tail)
        avg_similarity, matches = (query[1], query[2]) if query is not None else (0.0, 0)
        self._confidence = 0.4 * min(1.0, n / 180) + 0.6 * avg_similarity * min(1.0, matches / 10)
        self._factors = ModelFactors(
            base=float(np.mean(self._tail)), trend=self._trend, seasonality=1.0
        )
        self._finish_fit(n, used_fallback=False)
        return self

    def _match(
        self, window: _Array, exclude: int | None = None
    ) -> tuple[float, float, int] | None:
        """Attention-weighted next value for a window.

        Returns:
            Tuple of (prediction, mean similarity of matches, match count), or
            None when no entry clears the threshold.
        """
        if len(self._outcomes) == 0:
            return None
        query, mean, scale = self._normalize(window)
        query_norm = float(np.linalg.norm(query))
        norms = np.linalg.norm(self._windows, axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarity = (self._windows @ query) / (norms * query_norm)
        both_flat = (norms <= EPSILON) & (query_norm <= EPSILON)
        similarity = np.where(both_flat, 1.0, np.nan_to_num(similarity, nan=0.0))
        mask = similarity >= self.match_threshold
        if exclude is not None:
            mask[exclude] = False
        if not mask.any():
            return None
        attention = similarity[mask] * self._attention_prior[mask]
        total = float(np.sum(attention))
        if total <= EPSILON:
            return None
        z = float(np.sum(attention * self._outcomes[mask])) / total
        return mean + z * scale, float(np.mean(similarity[mask])), int(mask.sum())

    def predict(
        self,
        horizon: int,
        X: np.ndarray[Any, np.dtype[np.floating[Any]]] | None = None,  # noqa: ARG002
    ) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
        """Roll the window forward one matched day at a time.

        CRITICAL: Predictions at t+k become inputs for predictions at t+k+1.
        """
        self._check_fitted()
        window = list(self._tail)
        values = np.zeros(horizon, dtype=np.float64)
        for h in range(horizon):
            current = np.array(window[-self.sequence_length :], dtype=np.float64)
            match = self._match(current)
            if match is not None:
                value = match[0]
            else:
                weekday = self._weekday_factors[(self._n_obs + h) % 7]
                value = float(np.mean(current)) * weekday + self._trend * (h + 1) * 0.99 ** (h + 1)
            value = max(0.0, value)
            values[h] = value
            window.append(value)
        return values

    def get_params(self) -> dict[str, Any]:
        """Get model parameters."""
        return {
            "sequence_length": self.sequence_length,
            "num_patterns": self.num_patterns,
            "attention_decay": self.attention_decay,
            "match_threshold": self.match_threshold,
            "random_state": self.random_state,
        }


# =============================================================================
# Factory
# =============================================================================


def default_model_configs() -> dict[ModelType, ModelConfig]:
    """Default configuration for every ensemble member."""
    return {
        "prophet": DecompositionModelConfig(),
        "lstm": PatternMatchModelConfig(),
        "exponential_smoothing": ExponentialSmoothingModelConfig(),
        "arima": AutoRegressiveModelConfig(),
    }


def model_factory(
    config: ModelConfig,
    random_state: int = 42,
    events: Sequence[SeasonalEvent] = (),
    start_date: date_type | None = None,
) -> BaseForecaster:
    """Create a forecaster instance from a configuration.

    Args:
        config: Model configuration.
        random_state: Random seed for reproducibility.
        events: Seasonal events (decomposition model only).
        start_date: Date of the first training point (decomposition model only).

    Returns:
        Instantiated forecaster.

    Raises:
        ValueError: If model_type is unknown.
    """
    if isinstance(config, ExponentialSmoothingModelConfig):
        return ExponentialSmoothingForecaster(
            alpha=config.alpha,
            beta=config.beta,
            gamma=config.gamma,
            season_length=config.season_length,
            random_state=random_state,
        )
    if isinstance(config, DecompositionModelConfig):
        return DecompositionForecaster(
            weekly_order=config.weekly_order,
            yearly_order=config.yearly_order,
            n_changepoints=config.n_changepoints,
            ridge_lambda=config.ridge_lambda,
            start_date=start_date,
            events=events,
            random_state=random_state,
        )
    if isinstance(config, AutoRegressiveModelConfig):
        return AutoRegressiveForecaster(
            p=config.p, seasonal_lag=config.seasonal_lag, random_state=random_state
        )
    if isinstance(config, PatternMatchModelConfig):
        return PatternMatchForecaster(
            sequence_length=config.sequence_length,
            num_patterns=config.num_patterns,
            attention_decay=config.attention_decay,
            match_threshold=config.match_threshold,
            random_state=random_state,
        )
    raise ValueError(f"Unknown model type: {getattr(config, 'model_type', config)}")


def build_ensemble_models(
    events: Sequence[SeasonalEvent] = (),
    start_date: date_type | None = None,
    random_state: int = 42,
) -> dict[ModelType, BaseForecaster]:
    """Instantiate every ensemble member with default settings."""
    return {
        name: model_factory(config, random_state, events=events, start_date=start_date)
        for name, config in default_model_configs().items()
    }
