"""Weighted ensemble of the four sub-models with contextual multipliers.

Each forecast date is built as

    final = base * seasonality * deal * spike

applied in exactly that order, where ``base`` is the weight-normalized
average of the sub-models that fitted successfully.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import date, timedelta

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.deals.planner import deal_multiplier_for_date
from app.features.deals.schemas import ScheduledDeal
from app.features.forecasting.models import (
    MODEL_DISPLAY_NAMES,
    MODEL_TYPES,
    BaseForecaster,
    ModelType,
    build_ensemble_models,
)
from app.features.forecasting.schemas import (
    AggregatedForecast,
    EnsembleForecast,
    EnsembleRun,
    ModelPrediction,
    ModelWeights,
)
from app.features.seasonality.detector import get_seasonality_multiplier_for_date
from app.features.seasonality.schemas import SeasonalEvent
from app.features.spikes.detector import spike_multiplier_for_day
from app.features.spikes.schemas import SpikeDetection
from app.shared.schemas import SalesDataPoint
from app.shared.utils import fill_missing_days, units_array

logger = structlog.get_logger()

Z_95 = 1.96


def normalize_weights(
    weights: Mapping[str, float] | None, available: Sequence[str]
) -> dict[str, float]:
    """Renormalize weights over the available models.

    Missing or non-positive totals fall back to equal weights.

    Args:
        weights: Raw weights by model name, or None.
        available: Models that produced a forecast.

    Returns:
        Weights over ``available`` summing to 1.
    """
    if not available:
        return {}
    raw = {m: max(0.0, float((weights or {}).get(m, 0.0))) for m in available}
    total = sum(raw.values())
    if total <= 0:
        return {m: 1.0 / len(available) for m in available}
    return {m: w / total for m, w in raw.items()}


def safety_stock_z(forecast: float, config: ForecastConfig) -> float:
    """Z-score for a daily forecast: best seller above 10/day, slow mover below 1/day."""
    tiers = config.safety_stock
    if forecast > tiers.best_seller_daily_units:
        return config.safety_stock_z.best_seller
    if forecast < tiers.regular_daily_units:
        return config.safety_stock_z.slow_mover
    return config.safety_stock_z.regular


def point_safety_stock(
    forecast: float, demand_std: float, lead_time_days: int, config: ForecastConfig
) -> int:
    """Safety stock for one forecast point, never below ``min_days`` of demand."""
    z = safety_stock_z(forecast, config)
    statistical = z * demand_std * math.sqrt(max(0, lead_time_days))
    return math.ceil(max(statistical, config.safety_stock.min_days * forecast))


def _fit_models(
    sku: str,
    y: np.ndarray,
    horizon: int,
    models: Mapping[ModelType, BaseForecaster],
) -> tuple[dict[str, ModelPrediction], dict[str, str]]:
    """Fit and predict every model, excluding the ones that fail."""
    predictions: dict[str, ModelPrediction] = {}
    excluded: dict[str, str] = {}
    for name, model in models.items():
        try:
            prediction = model.fit(y).prediction(horizon)
            if not all(math.isfinite(v) for v in prediction.daily):
                raise ValueError("non-finite forecast values")
        except Exception as e:
            logger.warning(
                "ensemble.model_failed",
                sku=sku,
                model=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            excluded[name] = str(e) or type(e).__name__
            continue
        predictions[name] = prediction
    return predictions, excluded


def _seasonality_line(multiplier: float, event_name: str | None) -> str:
    if multiplier > 1:
        season = f"peak season: {event_name}" if event_name else "peak season"
    else:
        season = f"slow season: {event_name}" if event_name else "slow season"
    return f"Seasonality: {multiplier:.2f}x ({season})"


def run_ensemble(
    sku: str,
    sales: Sequence[SalesDataPoint],
    days_ahead: int,
    config: ForecastConfig,
    as_of: date,
    *,
    weights: ModelWeights | Mapping[str, float] | None = None,
    events: Sequence[SeasonalEvent] = (),
    deals: Sequence[ScheduledDeal] = (),
    spike: SpikeDetection | None = None,
    lead_time_days: int | None = None,
    models: Mapping[ModelType, BaseForecaster] | None = None,
    random_state: int = 42,
) -> EnsembleRun:
    """Forecast ``days_ahead`` days after as_of and keep run metadata.

    Args:
        sku: SKU identifier.
        sales: Daily sales history; days after as_of are ignored.
        days_ahead: Forecast horizon in days.
        config: Engine thresholds.
        as_of: Forecast origin. The first forecast date is as_of + 1.
        weights: Ensemble weights; None means equal weights.
        events: Seasonal event catalog.
        deals: Scheduled deals.
        spike: Spike detection to decay over the horizon.
        lead_time_days: Lead time for per-point safety stock; defaults to
            ``lead_time.default_lead_time_days``.
        models: Pre-built sub-models, mainly for tests.
        random_state: Random seed for the sub-models.

    Returns:
        EnsembleRun with one forecast per day.

    Raises:
        ValueError: If days_ahead is not positive.
    """
    if days_ahead < 1:
        raise ValueError(f"days_ahead must be >= 1, got {days_ahead}")

    history = fill_missing_days([p for p in sales if p.date <= as_of])
    history = history[-config.model.lookback_days :]
    start_date = history[0].date if history else as_of
    y = units_array(history)

    if models is None:
        models = build_ensemble_models(
            events=events, start_date=start_date, random_state=random_state
        )
    total_models = len(models)

    if len(y) == 0:
        predictions: dict[str, ModelPrediction] = {}
        excluded: dict[str, str] = {}
        logger.warning("ensemble.no_history", sku=sku)
    else:
        if len(y) < config.model.min_data_points:
            logger.warning(
                "ensemble.insufficient_data",
                sku=sku,
                n_points=len(y),
                min_points=config.model.min_data_points,
            )
        predictions, excluded = _fit_models(sku, y, days_ahead, models)

    raw_weights = weights.as_dict() if isinstance(weights, ModelWeights) else weights
    used = [m for m in MODEL_TYPES if m in predictions]
    used.extend(m for m in predictions if m not in used)
    normalized = normalize_weights(raw_weights, used)

    recent = y[-30:]
    demand_std = float(np.std(recent)) if len(recent) else 0.0
    safety_lead_time = (
        config.lead_time.default_lead_time_days if lead_time_days is None else lead_time_days
    )
    failure_penalty = len(used) / total_models if excluded and total_models else 1.0

    primary = max(used, key=lambda m: normalized[m]) if used else None
    forecasts: list[EnsembleForecast] = []
    for i in range(days_ahead):
        forecast_date = as_of + timedelta(days=i + 1)
        point_values = {m: predictions[m].daily[i] for m in used}

        if used:
            base = sum(normalized[m] * point_values[m] for m in used)
            confidence = sum(normalized[m] * predictions[m].daily_confidence[i] for m in used)
            sub_half = sum(
                normalized[m] * (predictions[m].daily_upper[i] - predictions[m].daily[i])
                for m in used
            )
            disagreement = float(np.std(list(point_values.values())))
            half_width = sub_half + Z_95 * disagreement * (
                1 + i / days_ahead * config.model.disagreement_widening
            )
        else:
            base = confidence = half_width = 0.0
        confidence = min(1.0, max(0.0, confidence * failure_penalty))

        seasonality = get_seasonality_multiplier_for_date(forecast_date, sku, events, config)
        deal_multiplier = deal_multiplier_for_date(forecast_date, deals)
        spike_multiplier = spike_multiplier_for_day(spike, (forecast_date - as_of).days)

        final = base
        final *= seasonality.multiplier
        final *= deal_multiplier
        final *= spike_multiplier
        final = max(0.0, final)

        scale = seasonality.multiplier * deal_multiplier * spike_multiplier
        scaled_half = half_width * scale
        safety_stock = point_safety_stock(final, demand_std, safety_lead_time, config)

        reasoning = [f"Base forecast: {base:.1f} units/day (ensemble of {len(used)} models)"]
        if primary is not None:
            reasoning.append(
                f"Primary model: {MODEL_DISPLAY_NAMES.get(primary, primary)} "
                f"({normalized[primary] * 100:.0f}% weight)"
            )
        else:
            reasoning.append("Primary model: none (no model produced a forecast)")
        applied = False
        if seasonality.multiplier != 1.0:
            reasoning.append(_seasonality_line(seasonality.multiplier, seasonality.event_name))
            applied = True
        if deal_multiplier != 1.0:
            reasoning.append(f"Deal impact: {deal_multiplier:.2f}x")
            applied = True
        if spike_multiplier != 1.0:
            reasoning.append(f"Spike adjustment: {spike_multiplier:.2f}x")
            applied = True
        if applied:
            reasoning.append(f"Final forecast: {final:.1f} units/day")
        if excluded:
            reasoning.append(f"Excluded models: {', '.join(sorted(excluded))}")

        forecasts.append(
            EnsembleForecast(
                date=forecast_date,
                sku=sku,
                base_forecast=base,
                final_forecast=final,
                confidence=confidence,
                seasonality_multiplier=seasonality.multiplier,
                seasonal_event=seasonality.event_name,
                deal_multiplier=deal_multiplier,
                spike_multiplier=spike_multiplier,
                safety_stock=safety_stock,
                recommended_inventory=math.ceil(final + safety_stock),
                upper_bound=final + scaled_half,
                lower_bound=max(0.0, final - scaled_half),
                reasoning=reasoning,
                model_forecasts=point_values,
                models_used=list(used),
            )
        )

    logger.info(
        "ensemble.forecast_completed",
        sku=sku,
        days_ahead=days_ahead,
        n_points=len(y),
        models_used=used,
        excluded=sorted(excluded),
    )
    return EnsembleRun(
        sku=sku,
        forecasts=forecasts,
        predictions=[predictions[m] for m in used],
        weights_used=normalized,
        excluded_models=excluded,
    )


def generate_ensemble_forecast(
    sku: str,
    sales: Sequence[SalesDataPoint],
    days_ahead: int,
    config: ForecastConfig,
    as_of: date,
    *,
    weights: ModelWeights | Mapping[str, float] | None = None,
    events: Sequence[SeasonalEvent] = (),
    deals: Sequence[ScheduledDeal] = (),
    spike: SpikeDetection | None = None,
    lead_time_days: int | None = None,
    models: Mapping[ModelType, BaseForecaster] | None = None,
    random_state: int = 42,
) -> list[EnsembleForecast]:
    """Daily ensemble forecasts for the horizon. See run_ensemble."""
    return run_ensemble(
        sku,
        sales,
        days_ahead,
        config,
        as_of,
        weights=weights,
        events=events,
        deals=deals,
        spike=spike,
        lead_time_days=lead_time_days,
        models=models,
        random_state=random_state,
    ).forecasts


def generate_aggregated_forecast(
    sku: str, forecasts: Sequence[EnsembleForecast], config: ForecastConfig
) -> AggregatedForecast:
    """Summarize a horizon: totals, average confidence, peak and low days.

    Args:
        sku: SKU identifier.
        forecasts: Daily ensemble forecasts.
        config: Engine thresholds; ``model.uplift_threshold`` marks uplift days.

    Returns:
        AggregatedForecast; zeros for an empty horizon.
    """
    if not forecasts:
        return AggregatedForecast(
            sku=sku,
            days=0,
            total_forecast=0.0,
            daily_average=0.0,
            confidence=0.0,
            reasoning=["No forecast days"],
        )

    total = sum(f.final_forecast for f in forecasts)
    days = len(forecasts)
    peak = max(forecasts, key=lambda f: f.final_forecast)
    low = min(forecasts, key=lambda f: f.final_forecast)
    uplift_days = sum(
        1
        for f in forecasts
        if f.seasonality_multiplier * f.deal_multiplier * f.spike_multiplier
        > config.model.uplift_threshold
    )

    reasoning = [
        f"Total forecast: {total:.0f} units over {days} days",
        f"Daily average: {total / days:.1f} units/day",
        f"Peak: {peak.final_forecast:.1f} units on {peak.date.isoformat()}",
    ]
    if uplift_days:
        reasoning.append(f"{uplift_days} days with seasonal, deal or spike uplift")

    return AggregatedForecast(
        sku=sku,
        days=days,
        total_forecast=total,
        daily_average=total / days,
        confidence=sum(f.confidence for f in forecasts) / days,
        peak_date=peak.date,
        peak_forecast=peak.final_forecast,
        low_date=low.date,
        low_forecast=low.final_forecast,
        uplift_days=uplift_days,
        reasoning=reasoning,
    )
