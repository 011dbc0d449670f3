"""Pydantic schemas for sub-model configuration, predictions and ensemble output.

Model configs are designed to be:
- Immutable (frozen=True) for reproducibility
- Versioned (schema_version) so stored forecasts can be traced to settings
- Hashable (config_hash) for deduplication
"""

from __future__ import annotations

import hashlib
from datetime import date as date_type
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.features.deals.schemas import ScheduledDeal
from app.features.safety_stock.schemas import SafetyStockCalculation
from app.features.spikes.schemas import SpikeDetection, SpikeSignals
from app.shared.schemas import InventoryPosition, SalesDataPoint, UrgencyLevel

ForecastModelName = Literal["prophet", "lstm", "exponential_smoothing", "arima"]

# =============================================================================
# Model Configuration Schemas
# =============================================================================


class ModelConfigBase(BaseModel):
    """Base configuration for all sub-models.

    All model configs inherit from this base to ensure:
    - Immutability after creation (frozen=True)
    - No extra fields allowed (extra="forbid")
    - Schema versioning for reproducibility
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    schema_version: str = Field(
        default="1.0",
        description="Semantic version of this config schema",
        pattern=r"^\d+\.\d+(\.\d+)?$",
    )

    def config_hash(self) -> str:
        """Generate deterministic hash of configuration.

        Returns:
            16-character hex string hash of config JSON.
        """
        config_json = self.model_dump_json()
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]


class ExponentialSmoothingModelConfig(ModelConfigBase):
    """Holt-Winters with additive trend and multiplicative weekly season.

    Attributes:
        alpha: Level smoothing factor.
        beta: Trend smoothing factor.
        gamma: Seasonal smoothing factor.
        season_length: Seasonal period in days.
    """

    model_type: Literal["exponential_smoothing"] = "exponential_smoothing"
    alpha: float = Field(default=0.3, gt=0, lt=1)
    beta: float = Field(default=0.1, gt=0, lt=1)
    gamma: float = Field(default=0.2, gt=0, lt=1)
    season_length: int = Field(default=7, ge=2, le=365)


class DecompositionModelConfig(ModelConfigBase):
    """Piecewise-linear trend plus Fourier seasonality, fitted by ridge regression.

    Attributes:
        weekly_order: Fourier order of the weekly component.
        yearly_order: Fourier order of the yearly component (used with 365+ points).
        n_changepoints: Maximum trend changepoints in the first 80% of history.
        ridge_lambda: L2 penalty on all but the intercept.
    """

    model_type: Literal["prophet"] = "prophet"
    weekly_order: int = Field(default=3, ge=0, le=3)
    yearly_order: int = Field(default=10, ge=0, le=20)
    n_changepoints: int = Field(default=10, ge=0, le=50)
    ridge_lambda: float = Field(default=0.1, ge=0)


class AutoRegressiveModelConfig(ModelConfigBase):
    """AR(p) on first differences with a seasonal AR term.

    Attributes:
        p: Non-seasonal autoregressive order.
        seasonal_lag: Lag of the seasonal AR term in days.
    """

    model_type: Literal["arima"] = "arima"
    p: int = Field(default=2, ge=1, le=7)
    seasonal_lag: int = Field(default=7, ge=2, le=28)


class PatternMatchModelConfig(ModelConfigBase):
    """Attention over a library of normalized historical sequences.

    Attributes:
        sequence_length: Length of each matched window.
        num_patterns: Most recent windows kept in the library.
        attention_decay: Recency decay of the attention boost.
        match_threshold: Minimum cosine similarity to count as a match.
    """

    model_type: Literal["lstm"] = "lstm"
    sequence_length: int = Field(default=14, ge=3, le=60)
    num_patterns: int = Field(default=100, ge=10, le=1000)
    attention_decay: float = Field(default=0.95, gt=0, lt=1)
    match_threshold: float = Field(default=0.7, ge=-1, le=1)


ModelConfig = (
    ExponentialSmoothingModelConfig
    | DecompositionModelConfig
    | AutoRegressiveModelConfig
    | PatternMatchModelConfig
)


# =============================================================================
# Predictions & Weights
# =============================================================================


class ModelFactors(BaseModel):
    """Components a sub-model attributes its forecast to."""

    base: float
    trend: float
    seasonality: float


class ModelPrediction(BaseModel):
    """Output of one sub-model over the forecast horizon.

    ``forecast`` and the bounds are horizon averages; the daily lists carry
    the per-day path used by the ensemble.
    """

    model: ForecastModelName
    forecast: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    upper_bound: float
    lower_bound: float = Field(..., ge=0)
    factors: ModelFactors
    daily: list[float] = Field(default_factory=list)
    daily_lower: list[float] = Field(default_factory=list)
    daily_upper: list[float] = Field(default_factory=list)
    daily_confidence: list[float] = Field(default_factory=list)
    used_fallback: bool = False


class ModelWeights(BaseModel):
    """Per-SKU ensemble weights. Stored weights need not sum to 1."""

    sku: str
    prophet: float = Field(default=0.25, ge=0)
    lstm: float = Field(default=0.25, ge=0)
    exponential_smoothing: float = Field(default=0.25, ge=0)
    arima: float = Field(default=0.25, ge=0)
    overall_mape: float | None = Field(default=None, ge=0)
    last_updated: datetime | None = None

    def as_dict(self) -> dict[str, float]:
        """Weights keyed by model name."""
        return {
            "prophet": self.prophet,
            "lstm": self.lstm,
            "exponential_smoothing": self.exponential_smoothing,
            "arima": self.arima,
        }

    @classmethod
    def equal(cls, sku: str) -> ModelWeights:
        """Equal weights for a SKU with no learned history."""
        return cls(sku=sku)

    @classmethod
    def from_mapping(
        cls, sku: str, weights: dict[str, float], overall_mape: float | None = None
    ) -> ModelWeights:
        """Build from a model-name mapping, missing models weigh 0."""
        return cls(
            sku=sku,
            prophet=weights.get("prophet", 0.0),
            lstm=weights.get("lstm", 0.0),
            exponential_smoothing=weights.get("exponential_smoothing", 0.0),
            arima=weights.get("arima", 0.0),
            overall_mape=overall_mape,
        )


# =============================================================================
# Ensemble Output
# =============================================================================


class EnsembleForecast(BaseModel):
    """Combined forecast for one SKU and date.

    ``final_forecast`` is exactly base x seasonality x deal x spike, applied
    in that order.
    """

    date: date_type
    sku: str
    base_forecast: float = Field(..., ge=0)
    final_forecast: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    seasonality_multiplier: float = Field(default=1.0, gt=0)
    seasonal_event: str | None = None
    deal_multiplier: float = Field(default=1.0, gt=0)
    spike_multiplier: float = Field(default=1.0, gt=0)
    safety_stock: int = Field(default=0, ge=0)
    recommended_inventory: int = Field(default=0, ge=0)
    upper_bound: float
    lower_bound: float = Field(..., ge=0)
    reasoning: list[str] = Field(default_factory=list)
    model_forecasts: dict[str, float] = Field(default_factory=dict)
    models_used: list[str] = Field(default_factory=list)


class AggregatedForecast(BaseModel):
    """Summary of a forecast horizon."""

    sku: str
    days: int
    total_forecast: float
    daily_average: float
    confidence: float
    peak_date: date_type | None = None
    peak_forecast: float = 0.0
    low_date: date_type | None = None
    low_forecast: float = 0.0
    uplift_days: int = 0
    reasoning: list[str] = Field(default_factory=list)


class EnsembleRun(BaseModel):
    """Ensemble forecasts plus run metadata."""

    sku: str
    forecasts: list[EnsembleForecast]
    predictions: list[ModelPrediction] = Field(default_factory=list)
    weights_used: dict[str, float] = Field(default_factory=dict)
    excluded_models: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Replenishment
# =============================================================================


class DaysOfSupply(BaseModel):
    """Days the stock at each location lasts at a given velocity."""

    fba: float
    warehouse: float
    total: float


class ReorderRecommendation(BaseModel):
    """What to order and send to FBA, and how soon."""

    sku: str
    avg_daily_forecast: float
    lead_time_days: int
    safety_stock: int
    reorder_point: int
    recommended_order_qty: int = Field(..., ge=0)
    recommended_fba_qty: int = Field(..., ge=0)
    days_of_supply: DaysOfSupply
    urgency: UrgencyLevel
    stockout_date: date_type | None = None
    reasoning: list[str] = Field(default_factory=list)


# =============================================================================
# API Request/Response Schemas
# =============================================================================


class EnsembleForecastRequest(BaseModel):
    """Request body for POST /forecasting/ensemble and /forecasting/aggregate.

    Attributes:
        sku: SKU to forecast.
        sales: Daily sales history, ascending or not; gaps count as zero.
        days_ahead: Forecast horizon in days.
        deals: Scheduled deals overlapping the horizon.
        spike_signals: Signals for spike cause attribution.
        detect_spikes: Run spike detection and apply its decay.
        lead_time_days: Supplier lead time for per-day safety stock.
        weights: Explicit weights; when absent the stored weights are used.
        as_of: Forecast origin, default today. Forecasts start the next day.
    """

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    sales: list[SalesDataPoint] = Field(default_factory=list)
    days_ahead: int = Field(default=30, ge=1, le=365)
    deals: list[ScheduledDeal] = Field(default_factory=list)
    spike_signals: SpikeSignals = Field(default_factory=SpikeSignals)
    detect_spikes: bool = True
    lead_time_days: int | None = Field(default=None, ge=0, le=365)
    weights: ModelWeights | None = None
    as_of: date_type | None = None


class EnsembleForecastResponse(BaseModel):
    """Response body for POST /forecasting/ensemble."""

    sku: str
    forecasts: list[EnsembleForecast]
    aggregate: AggregatedForecast
    predictions: list[ModelPrediction]
    weights_used: dict[str, float]
    weights_source: Literal["request", "learned", "equal"]
    events_source: Literal["database", "defaults"]
    excluded_models: dict[str, str]
    spike: SpikeDetection | None = None
    duration_ms: float


class SkuForecastRequest(EnsembleForecastRequest):
    """Request body for POST /forecasting/sku: forecast plus replenishment plan.

    Attributes:
        inventory: Current stock position.
        lead_time_std_days: Supplier lead-time standard deviation, if known.
        supplier_reliability: Supplier reliability score, if known.
        supplier_worsening: Whether the supplier's lead times are trending up.
        is_new_item: Add the new-item safety buffer.
    """

    inventory: InventoryPosition = Field(default_factory=InventoryPosition)
    lead_time_std_days: float | None = Field(default=None, ge=0)
    supplier_reliability: float | None = Field(default=None, ge=0, le=1)
    supplier_worsening: bool = False
    is_new_item: bool = False


class SkuForecastResponse(BaseModel):
    """Response body for POST /forecasting/sku."""

    sku: str
    forecast: EnsembleForecastResponse
    safety_stock: SafetyStockCalculation
    recommendation: ReorderRecommendation
