"""Pydantic schemas for new-item analog forecasting."""

from __future__ import annotations

from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.features.seasonality.schemas import SeasonalEvent

WatchStatus = Literal["normal", "high_watch", "critical"]
CheckFrequency = Literal["daily", "every_3_days", "weekly"]


class ProductProfile(BaseModel):
    """Catalog attributes used to match a new SKU against existing ones."""

    model_config = ConfigDict(frozen=True)

    sku: str = Field(..., min_length=1, max_length=100)
    category: str | None = None
    price: float = Field(..., gt=0)
    brand: str | None = None
    supplier_id: str | None = None
    launch_date: date_type | None = Field(
        default=None, description="First sale date; None when the SKU has not sold yet"
    )


class CandidateProduct(ProductProfile):
    """Existing SKU with its sales velocities."""

    velocity_30d: float | None = Field(default=None, ge=0)
    velocity_90d: float | None = Field(default=None, ge=0)
    first_month_velocity: float | None = Field(
        default=None, ge=0, description="Average units/day in the first 30 days after launch"
    )


class AnalogMatchCriteria(BaseModel):
    """Which attributes matched."""

    category: bool = False
    price_range: bool = False
    brand: bool = False
    supplier: bool = False


class AnalogPerformance(BaseModel):
    """Velocities of the analog SKU."""

    avg_velocity_30d: float
    avg_velocity_90d: float
    first_month_velocity: float


class AnalogSkuMatch(BaseModel):
    """Best-scoring existing SKU for a new item."""

    analog_sku: str
    match_score: float = Field(..., ge=0, le=1)
    match_reasons: list[str]
    match_criteria: AnalogMatchCriteria
    analog_performance: AnalogPerformance


class NewItemForecast(BaseModel):
    """Velocity forecast and monitoring cadence for a recently launched SKU."""

    sku: str
    is_new_item: bool
    days_since_launch: int = Field(..., ge=0)
    watch_status: WatchStatus
    analog_sku: str | None = None
    analog_match_score: float | None = None
    base_velocity: float = Field(..., gt=0)
    seasonal_multiplier: float = 1.0
    adjusted_velocity: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    next_check_date: date_type
    check_frequency: CheckFrequency
    actual_vs_forecasted: float | None = Field(
        default=None, description="Percent deviation of actual from base velocity"
    )
    needs_recalibration: bool = False


class RecalibrationResult(BaseModel):
    """Outcome of blending a new-item forecast with observed sales."""

    sku: str
    previous_velocity: float
    new_velocity: float
    change_percent: float
    reason: str
    recalibrated: bool
    forecast: NewItemForecast


# =============================================================================
# Request / Response
# =============================================================================


class NewItemForecastRequest(BaseModel):
    """Request body for forecasting a new SKU."""

    model_config = ConfigDict(extra="forbid")

    item: ProductProfile
    candidates: list[CandidateProduct] = Field(default_factory=list)
    actual_velocity: float | None = Field(
        default=None, ge=0, description="Observed units/day over the last 7 days"
    )
    events: list[SeasonalEvent] | None = Field(
        default=None, description="Event catalog; the stored catalog is used when omitted"
    )
    as_of: date_type | None = None


class NewItemForecastResponse(BaseModel):
    """New-item forecast and the analog it was based on."""

    forecast: NewItemForecast
    analog: AnalogSkuMatch | None
    events_source: Literal["request", "database", "defaults"]


class RecalibrateRequest(BaseModel):
    """Request body for recalibrating a new-item forecast."""

    model_config = ConfigDict(extra="forbid")

    forecast: NewItemForecast
    actual_velocity: float = Field(..., ge=0, description="Observed units/day over the last 7 days")
    force: bool = Field(
        default=False, description="Recalibrate even when the forecast is not flagged"
    )
