"""Metrics calculator for forecast accuracy.

Supported Metrics:
- MAPE: Mean Absolute Percentage Error (fraction, days with sales only)
- MAE: Mean Absolute Error
- RMSE: Root Mean Squared Error
- Bias: mean(predicted - actual), positive = over-forecast
- Hit rate: share of days within the percentage-error tolerance

CRITICAL: All metrics handle edge cases (zeros, empty arrays) and return
finite values so results can be stored and compared.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import numpy as np

from app.features.accuracy.schemas import ModelAccuracy

DEFAULT_HIT_TOLERANCE = 0.2


def percentage_errors(
    actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
    predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
) -> np.ndarray[Any, np.dtype[np.floating[Any]]]:
    """|predicted - actual| / actual per day, 0 where actual is 0."""
    errors = np.abs(predictions - actuals)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(actuals > 0, errors / actuals, 0.0)


@dataclass
class MetricResult:
    """Result of a single metric calculation.

    Attributes:
        name: Name of the metric.
        value: Calculated value.
        n_samples: Number of samples used in calculation.
        warnings: List of warnings generated during calculation.
    """

    name: str
    value: float
    n_samples: int
    warnings: list[str] = field(default_factory=lambda: [])


class MetricsCalculator:
    """Calculate forecast accuracy metrics.

    CRITICAL: All metrics handle edge cases (zeros, empty arrays).
    """

    @staticmethod
    def _check(
        name: str,
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
    ) -> MetricResult | None:
        if len(actuals) != len(predictions):
            raise ValueError(
                f"Length mismatch: actuals={len(actuals)}, predictions={len(predictions)}"
            )
        if len(actuals) == 0:
            return MetricResult(name=name, value=0.0, n_samples=0, warnings=["Empty array"])
        return None

    @staticmethod
    def mape(
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
    ) -> MetricResult:
        """Mean Absolute Percentage Error.

        Formula: mean(|A - F| / A) over days with A > 0

        Days without sales carry no percentage error and are skipped. With no
        such days the value is 0.

        Args:
            actuals: Ground truth values.
            predictions: Predicted values.

        Returns:
            MetricResult with MAPE as a fraction.

        Raises:
            ValueError: If arrays have different lengths.
        """
        empty = MetricsCalculator._check("mape", actuals, predictions)
        if empty is not None:
            return empty

        mask = actuals > 0
        n_valid = int(mask.sum())
        if n_valid == 0:
            return MetricResult(
                name="mape", value=0.0, n_samples=0, warnings=["No days with actual sales"]
            )

        warnings: list[str] = []
        if n_valid < len(actuals):
            warnings.append(f"{len(actuals) - n_valid} days with zero actuals skipped")
        value = float(np.mean(np.abs(predictions[mask] - actuals[mask]) / actuals[mask]))
        return MetricResult(name="mape", value=value, n_samples=n_valid, warnings=warnings)

    @staticmethod
    def mae(
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
    ) -> MetricResult:
        """Mean Absolute Error: mean(|A - F|)."""
        empty = MetricsCalculator._check("mae", actuals, predictions)
        if empty is not None:
            return empty
        value = float(np.mean(np.abs(actuals - predictions)))
        return MetricResult(name="mae", value=value, n_samples=len(actuals))

    @staticmethod
    def rmse(
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
    ) -> MetricResult:
        """Root Mean Squared Error: sqrt(mean((A - F)^2))."""
        empty = MetricsCalculator._check("rmse", actuals, predictions)
        if empty is not None:
            return empty
        value = float(np.sqrt(np.mean((actuals - predictions) ** 2)))
        return MetricResult(name="rmse", value=value, n_samples=len(actuals))

    @staticmethod
    def bias(
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
    ) -> MetricResult:
        """Forecast Bias.

        Formula: mean(predicted - actual)

        Interpretation:
        - Positive: Model over-forecasts
        - Negative: Model under-forecasts
        - Zero: No systematic bias
        """
        empty = MetricsCalculator._check("bias", actuals, predictions)
        if empty is not None:
            return empty

        warnings: list[str] = []
        errors = predictions - actuals
        value = float(np.mean(errors))
        error_std = float(np.std(errors))
        if error_std > 0 and abs(value) > error_std:
            warnings.append(
                "Bias exceeds error standard deviation; systematic over/under-forecasting detected"
            )
        return MetricResult(name="bias", value=value, n_samples=len(actuals), warnings=warnings)

    @staticmethod
    def hit_rate(
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
        tolerance: float = DEFAULT_HIT_TOLERANCE,
    ) -> MetricResult:
        """Share of days whose percentage error is within tolerance.

        Days with zero actuals count as a hit (their percentage error is 0).
        """
        empty = MetricsCalculator._check("hit_rate", actuals, predictions)
        if empty is not None:
            return empty
        hits = percentage_errors(actuals, predictions) <= tolerance
        return MetricResult(name="hit_rate", value=float(np.mean(hits)), n_samples=len(actuals))

    def calculate_all(
        self,
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
        tolerance: float = DEFAULT_HIT_TOLERANCE,
    ) -> dict[str, float]:
        """Calculate all point metrics.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "mape": self.mape(actuals, predictions).value,
            "mae": self.mae(actuals, predictions).value,
            "rmse": self.rmse(actuals, predictions).value,
            "bias": self.bias(actuals, predictions).value,
            "hit_rate": self.hit_rate(actuals, predictions, tolerance).value,
        }

    def model_accuracy(
        self,
        model: str,
        actuals: np.ndarray[Any, np.dtype[np.floating[Any]]],
        predictions: np.ndarray[Any, np.dtype[np.floating[Any]]],
        tolerance: float = DEFAULT_HIT_TOLERANCE,
    ) -> ModelAccuracy:
        """Package all metrics for a model."""
        metrics = self.calculate_all(actuals, predictions, tolerance)
        return ModelAccuracy(
            model=model,  # type: ignore[arg-type]
            mape=metrics["mape"],
            rmse=metrics["rmse"],
            mae=metrics["mae"],
            bias=metrics["bias"],
            hit_rate=metrics["hit_rate"],
            sample_size=len(actuals),
            last_updated=datetime.now(UTC),
        )
