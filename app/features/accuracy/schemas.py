"""Pydantic schemas for backtests, weight optimization and accuracy reporting."""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.features.forecasting.schemas import ForecastModelName, ModelWeights
from app.shared.schemas import SalesDataPoint

# =============================================================================
# Metrics & Backtests
# =============================================================================


class ModelAccuracy(BaseModel):
    """Accuracy of one model over a set of forecast/actual pairs.

    Attributes:
        model: Sub-model name.
        mape: Mean absolute percentage error as a fraction (0.15 = 15%).
        rmse: Root mean squared error in units.
        mae: Mean absolute error in units.
        bias: Mean of predicted - actual (positive = over-forecast).
        hit_rate: Share of points within the hit tolerance.
        sample_size: Number of evaluated points.
        last_updated: When the accuracy was computed.
    """

    model: ForecastModelName
    mape: float = Field(..., ge=0)
    rmse: float = Field(..., ge=0)
    mae: float = Field(..., ge=0)
    bias: float
    hit_rate: float = Field(..., ge=0, le=1)
    sample_size: int = Field(..., ge=0)
    last_updated: datetime | None = None


class BacktestPoint(BaseModel):
    """One evaluated day of a backtest."""

    date: date_type
    predicted: float
    actual: float
    percentage_error: float = Field(..., ge=0)


class BacktestResult(BaseModel):
    """Rolling-origin backtest of one model."""

    sku: str
    model: ForecastModelName
    period_start: date_type
    period_end: date_type
    num_windows: int = Field(..., ge=2)
    accuracy: ModelAccuracy
    points: list[BacktestPoint] = Field(default_factory=list)


class WeightOptimizationResult(BaseModel):
    """Outcome of one weight-learning step.

    Attributes:
        sku: SKU identifier.
        weights: Proposed weights (floored, summing to 1).
        previous_weights: Weights the step started from.
        model_accuracies: Backtest accuracy per model.
        previous_mape: Holdout ensemble MAPE with the previous weights.
        new_mape: Holdout ensemble MAPE with the proposed weights.
        improved: Whether new_mape beats previous_mape.
        should_save: Whether the proposed weights should replace stored ones.
        persisted: Whether they were stored (set by the service).
    """

    sku: str
    weights: ModelWeights
    previous_weights: ModelWeights
    model_accuracies: list[ModelAccuracy] = Field(default_factory=list)
    previous_mape: float | None = None
    new_mape: float
    improved: bool
    should_save: bool
    persisted: bool = False


class ModelComparison(BaseModel):
    """Holdout MAPE and bias of one model."""

    model: ForecastModelName
    mape: float = Field(..., ge=0)
    bias: float
    sample_size: int = Field(default=0, ge=0)


# =============================================================================
# Tracking & Reports
# =============================================================================


class ForecastAccuracyEntry(BaseModel):
    """A forecast for one day compared against what actually sold."""

    model_config = ConfigDict(from_attributes=True)

    sku: str = Field(..., min_length=1, max_length=100)
    forecast_date: date_type
    model: str = Field(default="ensemble", max_length=30)
    predicted_units: float = Field(..., ge=0)
    actual_units: float = Field(..., ge=0)
    percentage_error: float = Field(..., ge=0)
    within_tolerance: bool


class ModelReportLine(BaseModel):
    """Per-model accuracy in a report."""

    model: str
    mape: float
    sample_size: int
    sku_count: int
    best_for_skus: list[str] = Field(default_factory=list)


class CategoryReportLine(BaseModel):
    """Per-category accuracy in a report."""

    category: str
    mape: float
    sku_count: int


class SkuAccuracyLine(BaseModel):
    """Per-SKU accuracy in a report; ``reason`` is set for the worst SKUs."""

    sku: str
    mape: float
    bias: float
    sample_size: int
    reason: str | None = None


class AccuracyReport(BaseModel):
    """Accuracy summary over a period."""

    period_start: date_type
    period_end: date_type
    overall_mape: float
    previous_mape: float | None = None
    improvement: float | None = Field(
        default=None, description="previous_mape - overall_mape; positive is better"
    )
    total_records: int
    by_model: list[ModelReportLine] = Field(default_factory=list)
    by_category: list[CategoryReportLine] = Field(default_factory=list)
    best_skus: list[SkuAccuracyLine] = Field(default_factory=list)
    worst_skus: list[SkuAccuracyLine] = Field(default_factory=list)


# =============================================================================
# API Request/Response Schemas
# =============================================================================


class OptimizeWeightsRequest(BaseModel):
    """Request body for POST /accuracy/optimize.

    Attributes:
        sku: SKU to optimize.
        sales: Daily sales history (90+ days for a backtest).
        current_weights: Starting weights; when absent stored weights are used.
    """

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    sales: list[SalesDataPoint] = Field(default_factory=list)
    current_weights: ModelWeights | None = None


class OptimizeWeightsResponse(BaseModel):
    """Response body for POST /accuracy/optimize."""

    sku: str
    result: WeightOptimizationResult | None = None
    skipped_reason: str | None = None
    duration_ms: float


class CompareModelsRequest(BaseModel):
    """Request body for POST /accuracy/compare."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    sales: list[SalesDataPoint] = Field(default_factory=list)
    validation_days: int = Field(default=30, ge=1, le=180)


class CompareModelsResponse(BaseModel):
    """Response body for POST /accuracy/compare."""

    sku: str
    validation_days: int
    models: list[ModelComparison]
    best_model: ForecastModelName | None = None


class AccuracyObservation(BaseModel):
    """A predicted/actual pair submitted for tracking."""

    sku: str = Field(..., min_length=1, max_length=100)
    forecast_date: date_type
    predicted_units: float = Field(..., ge=0)
    actual_units: float = Field(..., ge=0)
    model: str = Field(default="ensemble", max_length=30)


class TrackAccuracyRequest(BaseModel):
    """Request body for POST /accuracy/track."""

    model_config = ConfigDict(extra="forbid")

    observations: list[AccuracyObservation] = Field(..., min_length=1)


class TrackAccuracyResponse(BaseModel):
    """Response body for POST /accuracy/track."""

    records: list[ForecastAccuracyEntry]
    persisted: bool


class AccuracyReportRequest(BaseModel):
    """Request body for POST /accuracy/report.

    When ``records`` is empty the stored records for the period are used.
    """

    model_config = ConfigDict(extra="forbid")

    period_start: date_type
    period_end: date_type
    records: list[ForecastAccuracyEntry] = Field(default_factory=list)
    previous_records: list[ForecastAccuracyEntry] | None = None
    categories: dict[str, str] = Field(
        default_factory=dict, description="SKU -> category for the category breakdown"
    )

    @model_validator(mode="after")
    def validate_period(self) -> AccuracyReportRequest:
        """period_end must not precede period_start."""
        if self.period_end < self.period_start:
            raise ValueError(
                f"period_end ({self.period_end}) must be on or after "
                f"period_start ({self.period_start})"
            )
        return self
