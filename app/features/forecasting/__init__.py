"""Forecasting module: four sub-models combined into a weighted ensemble.

Each daily forecast is the weight-normalized average of the sub-models that
fitted, multiplied by seasonality, deal and spike factors in that order.

Exports:
    Models:
        - BaseForecaster: Abstract base class for all sub-models
        - ExponentialSmoothingForecaster: Holt-Winters, weekly season
        - DecompositionForecaster: Piecewise trend plus Fourier seasonality
        - AutoRegressiveForecaster: AR on differences with a seasonal term
        - PatternMatchForecaster: Attention over historical sequences
        - model_factory, build_ensemble_models

    Ensemble:
        - run_ensemble, generate_ensemble_forecast: Daily ensemble forecasts
        - generate_aggregated_forecast: Horizon summary
        - normalize_weights

    Schemas:
        - ModelConfig and the per-model configs
        - ModelPrediction, ModelWeights
        - EnsembleForecast, AggregatedForecast, ReorderRecommendation
"""

from app.features.forecasting.ensemble import (
    generate_aggregated_forecast,
    generate_ensemble_forecast,
    normalize_weights,
    run_ensemble,
)
from app.features.forecasting.models import (
    AutoRegressiveForecaster,
    BaseForecaster,
    DecompositionForecaster,
    ExponentialSmoothingForecaster,
    FitResult,
    PatternMatchForecaster,
    build_ensemble_models,
    model_factory,
)
from app.features.forecasting.schemas import (
    AggregatedForecast,
    AutoRegressiveModelConfig,
    DecompositionModelConfig,
    EnsembleForecast,
    ExponentialSmoothingModelConfig,
    ModelConfig,
    ModelPrediction,
    ModelWeights,
    PatternMatchModelConfig,
    ReorderRecommendation,
)

__all__ = [
    # Models
    "AutoRegressiveForecaster",
    "BaseForecaster",
    "DecompositionForecaster",
    "ExponentialSmoothingForecaster",
    "FitResult",
    "PatternMatchForecaster",
    "build_ensemble_models",
    "model_factory",
    # Ensemble
    "generate_aggregated_forecast",
    "generate_ensemble_forecast",
    "normalize_weights",
    "run_ensemble",
    # Schemas
    "AggregatedForecast",
    "AutoRegressiveModelConfig",
    "DecompositionModelConfig",
    "EnsembleForecast",
    "ExponentialSmoothingModelConfig",
    "ModelConfig",
    "ModelPrediction",
    "ModelWeights",
    "PatternMatchModelConfig",
    "ReorderRecommendation",
]
