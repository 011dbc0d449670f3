"""Forecasting service: resolves weights, events and spikes, then runs the ensemble.

Orchestrates:
- Ensemble weights: request, then stored learned weights, then equal
- Event catalog: stored events, then the default catalog
- Spike detection over the submitted history
- Safety stock and reorder planning for /forecasting/sku

CRITICAL: the core functions receive an explicit as_of; "today" is only
resolved here.
"""

from __future__ import annotations

import time
from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import BadRequestError
from app.core.logging import sku_context
from app.features.accuracy.service import load_learned_weights
from app.features.alerts.recommendation import generate_reorder_recommendation
from app.features.forecasting.ensemble import (
    generate_aggregated_forecast,
    run_ensemble,
)
from app.features.forecasting.schemas import (
    AggregatedForecast,
    EnsembleForecastRequest,
    EnsembleForecastResponse,
    ModelWeights,
    SkuForecastRequest,
    SkuForecastResponse,
)
from app.features.safety_stock.calculator import (
    calculate_safety_stock,
    demand_stats_from_sales,
    seasonal_context,
)
from app.features.safety_stock.schemas import LeadTimeProfile
from app.features.seasonality.service import load_events_or_defaults
from app.features.spikes.detector import detect_spike
from app.features.spikes.schemas import SpikeDetection

logger = structlog.get_logger()


class ForecastingService:
    """Service for ensemble forecasts and per-SKU replenishment plans.

    Provides orchestration layer for:
    - Resolving ensemble weights and the event catalog from storage
    - Running spike detection ahead of the ensemble
    - Combining the forecast with safety stock and a reorder recommendation
    """

    def __init__(self) -> None:
        """Initialize the forecasting service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def _resolve_weights(
        self, db: AsyncSession | None, request: EnsembleForecastRequest
    ) -> tuple[ModelWeights, str]:
        """Weights and where they came from: request, learned or equal."""
        if request.weights is not None:
            return request.weights, "request"
        learned = await load_learned_weights(db, request.sku)
        if learned is not None:
            return learned, "learned"
        return ModelWeights.equal(request.sku), "equal"

    def _detect_spike(
        self, request: EnsembleForecastRequest, as_of: date, inventory_total: float = 0.0
    ) -> SpikeDetection | None:
        if not request.detect_spikes:
            return None
        return detect_spike(
            request.sku,
            request.sales,
            self.config,
            signals=request.spike_signals,
            inventory_total=inventory_total,
            lead_time_days=request.lead_time_days,
            as_of=as_of,
        )

    async def ensemble(
        self,
        db: AsyncSession | None,
        request: EnsembleForecastRequest,
        inventory_total: float = 0.0,
    ) -> EnsembleForecastResponse:
        """Daily ensemble forecasts plus the horizon aggregate.

        Args:
            db: Database session for weights and events, or None for defaults.
            request: SKU history and forecast options.
            inventory_total: Sellable units, used for the spike impact estimate.

        Returns:
            EnsembleForecastResponse with the weight and event sources.

        Raises:
            BadRequestError: If days_ahead exceeds FORECAST_MAX_HORIZON.
        """
        max_horizon = self.settings.forecast_max_horizon
        if request.days_ahead > max_horizon:
            raise BadRequestError(
                message=f"days_ahead {request.days_ahead} exceeds the maximum of {max_horizon}",
                details={"days_ahead": request.days_ahead, "max_horizon": max_horizon},
            )

        start_time = time.perf_counter()
        as_of = request.as_of or date.today()

        with sku_context(request.sku):
            weights, weights_source = await self._resolve_weights(db, request)
            events, from_db = await load_events_or_defaults(db)
            spike = self._detect_spike(request, as_of, inventory_total)

            run = run_ensemble(
                request.sku,
                request.sales,
                request.days_ahead,
                self.config,
                as_of,
                weights=weights,
                events=events,
                deals=request.deals,
                spike=spike,
                lead_time_days=request.lead_time_days,
                random_state=self.settings.forecast_random_seed,
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "forecasting.ensemble_completed",
            sku=request.sku,
            days_ahead=request.days_ahead,
            weights_source=weights_source,
            events_from_db=from_db,
            is_spiking=bool(spike and spike.is_spiking),
            duration_ms=round(duration_ms, 2),
        )
        return EnsembleForecastResponse(
            sku=request.sku,
            forecasts=run.forecasts,
            aggregate=generate_aggregated_forecast(request.sku, run.forecasts, self.config),
            predictions=run.predictions,
            weights_used=run.weights_used,
            weights_source=weights_source,  # type: ignore[arg-type]
            events_source="database" if from_db else "defaults",
            excluded_models=run.excluded_models,
            spike=spike,
            duration_ms=duration_ms,
        )

    async def aggregate(
        self, db: AsyncSession | None, request: EnsembleForecastRequest
    ) -> AggregatedForecast:
        """Horizon summary only."""
        response = await self.ensemble(db, request)
        return response.aggregate

    async def sku_plan(
        self, db: AsyncSession | None, request: SkuForecastRequest
    ) -> SkuForecastResponse:
        """Forecast, safety stock and reorder recommendation for one SKU.

        The safety stock uses the demand of the submitted history and the
        supplier inputs of the request. The recommendation averages the final
        daily forecasts of the horizon.
        """
        as_of = request.as_of or date.today()
        position = request.inventory
        forecast = await self.ensemble(db, request, inventory_total=position.total_units)
        events, _ = await load_events_or_defaults(db)
        lead_time_days = (
            self.config.lead_time.default_lead_time_days
            if request.lead_time_days is None
            else request.lead_time_days
        )

        with sku_context(request.sku):
            calculation = calculate_safety_stock(
                sku=request.sku,
                demand=demand_stats_from_sales(request.sales) if request.sales else None,
                lead_time=LeadTimeProfile(
                    days=float(lead_time_days),
                    std=request.lead_time_std_days,
                    reliability_score=request.supplier_reliability,
                    is_getting_worse=request.supplier_worsening,
                ),
                context=seasonal_context(
                    events,
                    request.sku,
                    as_of,
                    self.config,
                    is_new_item=request.is_new_item,
                    spike=forecast.spike,
                ),
                config=self.config,
            )
            recommendation = generate_reorder_recommendation(
                request.sku,
                [f.final_forecast for f in forecast.forecasts],
                calculation.final_safety_stock,
                position,
                lead_time_days,
                self.config,
                as_of,
            )

        logger.info(
            "forecasting.sku_plan_completed",
            sku=request.sku,
            urgency=recommendation.urgency,
            order_qty=recommendation.recommended_order_qty,
            safety_stock=calculation.final_safety_stock,
        )
        return SkuForecastResponse(
            sku=request.sku,
            forecast=forecast,
            safety_stock=calculation,
            recommendation=recommendation,
        )
