"""Accuracy module: backtests, ensemble weight learning and accuracy tracking.

Exports:
    Metrics:
        - MetricsCalculator: MAPE, MAE, RMSE, bias and hit rate
        - MetricResult

    Learning:
        - run_backtest: Rolling-origin backtest of one sub-model
        - optimize_model_weights: One inverse-MAPE weight-learning step
        - calculate_ensemble_mape, compare_model_performance

    Tracking:
        - track_forecast_accuracy: Score one forecast/actual pair
        - generate_accuracy_report: Period summary with best and worst SKUs

    Schemas:
        - ModelAccuracy, BacktestResult, WeightOptimizationResult
        - ForecastAccuracyEntry, AccuracyReport
"""

from app.features.accuracy.metrics import MetricResult, MetricsCalculator
from app.features.accuracy.optimizer import (
    calculate_ensemble_mape,
    compare_model_performance,
    optimize_model_weights,
    run_backtest,
)
from app.features.accuracy.schemas import (
    AccuracyReport,
    BacktestResult,
    ForecastAccuracyEntry,
    ModelAccuracy,
    WeightOptimizationResult,
)
from app.features.accuracy.tracker import generate_accuracy_report, track_forecast_accuracy

__all__ = [
    "AccuracyReport",
    "BacktestResult",
    "ForecastAccuracyEntry",
    "MetricResult",
    "MetricsCalculator",
    "ModelAccuracy",
    "WeightOptimizationResult",
    "calculate_ensemble_mape",
    "compare_model_performance",
    "generate_accuracy_report",
    "optimize_model_weights",
    "run_backtest",
    "track_forecast_accuracy",
]
