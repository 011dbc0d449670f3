"""Rolling-origin backtests and inverse-MAPE ensemble weight learning.

One call to optimize_model_weights is one explicit learning step:

    backtest each model -> accuracy -> proposed weights -> holdout comparison

Persisting the result is left to the caller.

CRITICAL: Respects temporal order - no future data in training.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.accuracy.metrics import MetricsCalculator, percentage_errors
from app.features.accuracy.schemas import (
    BacktestPoint,
    BacktestResult,
    ModelAccuracy,
    ModelComparison,
    WeightOptimizationResult,
)
from app.features.forecasting.ensemble import normalize_weights
from app.features.forecasting.models import (
    MODEL_TYPES,
    ModelType,
    default_model_configs,
    model_factory,
)
from app.features.forecasting.schemas import ModelWeights
from app.shared.schemas import SalesDataPoint
from app.shared.utils import fill_missing_days, units_array

logger = structlog.get_logger()

INVERSE_MAPE_EPSILON = 0.01
MAX_USABLE_MAPE = 1.0
ENSEMBLE_HOLDOUT_DAYS = 30
MIN_TRAIN_DAYS = 30

_Array = np.ndarray[Any, np.dtype[np.floating[Any]]]


def _prepare_history(
    sales: Sequence[SalesDataPoint], config: ForecastConfig
) -> list[SalesDataPoint]:
    return fill_missing_days(sales)[-config.model.lookback_days :]


def _forecast(model_type: ModelType, train: _Array, horizon: int, random_state: int = 42) -> _Array:
    """Fit a fresh default-configured model and forecast the horizon."""
    model = model_factory(default_model_configs()[model_type], random_state=random_state)
    return model.fit(train).predict(horizon)


def run_backtest(
    sku: str,
    sales: Sequence[SalesDataPoint],
    model_type: ModelType,
    config: ForecastConfig,
) -> BacktestResult | None:
    """Rolling-origin backtest of one model.

    The last ``num_windows`` blocks of ``backtest_window_days`` each serve as
    a test window for a model trained on everything before it:

        num_windows = min(max_windows, n // window - 1)

    Args:
        sku: SKU identifier.
        sales: Daily sales history.
        model_type: Sub-model to evaluate.
        config: Engine thresholds.

    Returns:
        BacktestResult, or None with fewer than ``min_backtest_points`` days
        or fewer than 2 windows.
    """
    settings = config.accuracy
    history = _prepare_history(sales, config)
    n = len(history)
    if n < settings.min_backtest_points:
        logger.warning(
            "accuracy.backtest_insufficient_data",
            sku=sku,
            model=model_type,
            n_points=n,
            min_points=settings.min_backtest_points,
        )
        return None

    window = settings.backtest_window_days
    num_windows = min(settings.max_windows, n // window - 1)
    if num_windows < 2:
        return None

    y = units_array(history)
    actual_parts: list[_Array] = []
    predicted_parts: list[_Array] = []
    for w in range(num_windows):
        train_end = n - (num_windows - w) * window
        test = y[train_end : train_end + window]
        try:
            predicted = _forecast(model_type, y[:train_end], len(test))
        except Exception as e:
            logger.warning(
                "accuracy.backtest_window_failed",
                sku=sku,
                model=model_type,
                window=w,
                error=str(e),
                error_type=type(e).__name__,
            )
            predicted = np.zeros(len(test), dtype=np.float64)
        actual_parts.append(test)
        predicted_parts.append(predicted)

    actuals = np.concatenate(actual_parts)
    predictions = np.concatenate(predicted_parts)
    accuracy = MetricsCalculator().model_accuracy(
        model_type, actuals, predictions, tolerance=settings.hit_tolerance
    )

    start_index = n - num_windows * window
    errors = percentage_errors(actuals, predictions)
    points = [
        BacktestPoint(
            date=history[start_index + i].date,
            predicted=float(predictions[i]),
            actual=float(actuals[i]),
            percentage_error=float(errors[i]),
        )
        for i in range(len(actuals))
    ]

    logger.info(
        "accuracy.backtest_completed",
        sku=sku,
        model=model_type,
        num_windows=num_windows,
        mape=round(accuracy.mape, 4),
    )
    return BacktestResult(
        sku=sku,
        model=model_type,
        period_start=history[start_index].date,
        period_end=history[-1].date,
        num_windows=num_windows,
        accuracy=accuracy,
        points=points,
    )


def _holdout_forecasts(
    y: _Array, horizon: int, models: Sequence[ModelType] = MODEL_TYPES
) -> dict[str, _Array]:
    """Forecast the last ``horizon`` days from everything before them."""
    train = y[:-horizon]
    forecasts: dict[str, _Array] = {}
    for model_type in models:
        try:
            forecasts[model_type] = _forecast(model_type, train, horizon)
        except Exception as e:
            logger.warning(
                "accuracy.holdout_model_failed",
                model=model_type,
                error=str(e),
                error_type=type(e).__name__,
            )
    return forecasts


def _ensemble_mape(
    actuals: _Array, forecasts: Mapping[str, _Array], weights: Mapping[str, float]
) -> float:
    normalized = normalize_weights(weights, list(forecasts))
    if not normalized:
        return 1.0
    combined = sum(normalized[m] * forecasts[m] for m in normalized)
    mask = actuals > 0
    if not mask.any():
        return 1.0
    return float(np.mean(np.abs(combined[mask] - actuals[mask]) / actuals[mask]))


def calculate_ensemble_mape(
    sales: Sequence[SalesDataPoint],
    weights: ModelWeights | Mapping[str, float],
    config: ForecastConfig,
    holdout_days: int = ENSEMBLE_HOLDOUT_DAYS,
) -> float:
    """MAPE of the weighted ensemble on the last ``holdout_days`` days.

    Returns 1.0 when there is too little history or no day with sales.
    """
    y = units_array(_prepare_history(sales, config))
    if len(y) < holdout_days + MIN_TRAIN_DAYS:
        return 1.0
    raw = weights.as_dict() if isinstance(weights, ModelWeights) else weights
    return _ensemble_mape(y[-holdout_days:], _holdout_forecasts(y, holdout_days), raw)


def propose_weights(
    accuracies: Sequence[ModelAccuracy], config: ForecastConfig
) -> dict[str, float]:
    """Inverse-MAPE weights from one set of backtests.

    Steps:
    1. score = 1 / (mape + 0.01) for models with mape < 1
    2. normalize (equal weights when no model qualifies)
    3. floor every weight at weight_floor and renormalize

    Stored weights play no part, so rerunning on the same history gives
    the same weights.

    Returns:
        Weights for all four models, each > 0, summing to 1.
    """
    scores = {
        a.model: 1.0 / (a.mape + INVERSE_MAPE_EPSILON)
        for a in accuracies
        if a.mape < MAX_USABLE_MAPE
    }
    total = sum(scores.values())
    if total > 0:
        new = {m: scores.get(m, 0.0) / total for m in MODEL_TYPES}
    else:
        new = {m: 1.0 / len(MODEL_TYPES) for m in MODEL_TYPES}

    floor = config.model.weight_floor
    floored = {m: max(w, floor) for m, w in new.items()}
    floored_total = sum(floored.values())
    return {m: w / floored_total for m, w in floored.items()}


def optimize_model_weights(
    sku: str,
    sales: Sequence[SalesDataPoint],
    current_weights: ModelWeights | None,
    config: ForecastConfig,
) -> WeightOptimizationResult | None:
    """Run one weight-learning step for a SKU.

    Args:
        sku: SKU identifier.
        sales: Daily sales history.
        current_weights: Stored weights; None means the configured defaults
            with no recorded MAPE.
        config: Engine thresholds.

    Returns:
        WeightOptimizationResult, or None when the history is too short to
        backtest.
    """
    previous = current_weights or ModelWeights.from_mapping(sku, config.model.default_weights)

    backtests = [run_backtest(sku, sales, m, config) for m in MODEL_TYPES]
    if any(b is None for b in backtests):
        logger.warning("accuracy.optimize_skipped", sku=sku, reason="insufficient_history")
        return None
    accuracies = [b.accuracy for b in backtests if b is not None]

    proposed = propose_weights(accuracies, config)

    y = units_array(_prepare_history(sales, config))
    holdout = _holdout_forecasts(y, ENSEMBLE_HOLDOUT_DAYS)
    actuals = y[-ENSEMBLE_HOLDOUT_DAYS:]
    previous_mape = _ensemble_mape(actuals, holdout, previous.as_dict())
    new_mape = _ensemble_mape(actuals, holdout, proposed)

    improved = new_mape < previous_mape
    should_save = previous.overall_mape is None or new_mape <= previous_mape

    weights = ModelWeights.from_mapping(sku, proposed, overall_mape=new_mape).model_copy(
        update={"last_updated": datetime.now(UTC)}
    )

    logger.info(
        "accuracy.optimize_completed",
        sku=sku,
        previous_mape=round(previous_mape, 4),
        new_mape=round(new_mape, 4),
        improved=improved,
        should_save=should_save,
    )
    return WeightOptimizationResult(
        sku=sku,
        weights=weights,
        previous_weights=previous,
        model_accuracies=accuracies,
        previous_mape=previous_mape,
        new_mape=new_mape,
        improved=improved,
        should_save=should_save,
    )


def compare_model_performance(
    sales: Sequence[SalesDataPoint],
    config: ForecastConfig,
    validation_days: int = 30,
) -> list[ModelComparison]:
    """Holdout MAPE and bias of each model on the last ``validation_days``.

    Histories shorter than validation_days + 30 report zeros for every model.
    """
    y = units_array(_prepare_history(sales, config))
    if len(y) < validation_days + MIN_TRAIN_DAYS:
        return [ModelComparison(model=m, mape=0.0, bias=0.0) for m in MODEL_TYPES]

    actuals = y[-validation_days:]
    forecasts = _holdout_forecasts(y, validation_days)
    calculator = MetricsCalculator()
    comparisons: list[ModelComparison] = []
    for model_type in MODEL_TYPES:
        predicted = forecasts.get(model_type)
        if predicted is None:
            continue
        comparisons.append(
            ModelComparison(
                model=model_type,
                mape=calculator.mape(actuals, predicted).value,
                bias=calculator.bias(actuals, predicted).value,
                sample_size=len(actuals),
            )
        )
    return comparisons
