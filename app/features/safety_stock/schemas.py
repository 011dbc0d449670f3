"""Pydantic schemas for safety-stock calculation."""

from __future__ import annotations

from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.features.lead_time.schemas import LeadTimeData
from app.features.seasonality.schemas import SeasonalEvent
from app.features.spikes.schemas import SpikeDetection
from app.shared.schemas import SalesDataPoint

ImportanceLevel = Literal["best_seller", "regular", "slow_mover"]


class DemandStats(BaseModel):
    """Mean and population standard deviation of daily demand."""

    model_config = ConfigDict(frozen=True)

    mean: float = Field(..., ge=0)
    std: float = Field(..., ge=0)

    @property
    def cv(self) -> float:
        """Coefficient of variation, 0 for zero mean."""
        return self.std / self.mean if self.mean > 0 else 0.0


class LeadTimeProfile(BaseModel):
    """Lead-time inputs to the safety-stock formula.

    Attributes:
        days: Average lead time in days.
        std: Lead-time standard deviation; 20% of ``days`` when unknown.
        reliability_score: Supplier reliability, None without analyzer data.
        is_getting_worse: Whether recent lead times are trending up.
        trend_pct: Lead-time trend in percent.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    days: float = Field(default=30.0, ge=0)
    std: float | None = Field(default=None, ge=0)
    reliability_score: float | None = Field(default=None, ge=0, le=1)
    is_getting_worse: bool = False
    trend_pct: float = 0.0

    @classmethod
    def from_lead_time_data(cls, data: LeadTimeData) -> LeadTimeProfile:
        """Build from a supplier analysis."""
        return cls(
            days=data.avg_actual_lead_time,
            std=data.lead_time_variance,
            reliability_score=data.reliability_score,
            is_getting_worse=data.is_getting_worse,
            trend_pct=data.trend_pct,
        )


class SafetyStockContext(BaseModel):
    """Situational inputs that add buffer on top of the statistical base."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    upcoming_event: str | None = None
    days_until_event: int | None = Field(default=None, ge=0)
    is_new_item: bool = False
    is_spiking: bool = False
    spike_multiplier: float = Field(default=1.0, gt=0)


class SafetyStockCalculation(BaseModel):
    """Safety stock for one SKU with every adjustment itemized.

    ``safety_stock`` is the rounded-up statistical base; ``final_safety_stock``
    includes adjustments and the min/max days-of-demand clamp.
    """

    sku: str
    demand_mean: float = Field(..., ge=0)
    demand_std: float = Field(..., ge=0)
    lead_time_days: int = Field(..., ge=0)
    lead_time_std: float = Field(..., ge=0)
    service_level_target: float = Field(..., gt=0, lt=1)
    z_score: float = Field(..., gt=0)
    importance: ImportanceLevel
    safety_stock: int = Field(..., ge=0)
    seasonality_adjustment: float = Field(default=0.0, ge=0)
    supplier_reliability_adjustment: float = Field(default=0.0, ge=0)
    new_item_adjustment: float = Field(default=0.0, ge=0)
    spike_adjustment: float = Field(default=0.0, ge=0)
    final_safety_stock: int = Field(..., ge=0)
    reasoning: list[str] = Field(default_factory=list)


# =============================================================================
# Request / Response
# =============================================================================


class SafetyStockRequest(BaseModel):
    """Request body for POST /safety-stock/calculate.

    Attributes:
        sku: SKU identifier.
        sales: Daily sales; the last 90 days are used.
        lead_time: Supplier analysis; takes precedence over lead_time_days.
        lead_time_days: Plain lead time when no analysis is available.
        is_new_item: Whether the SKU is still in its launch period.
        spike: Current spike detection, if any.
        events: Event catalog; when omitted the stored catalog is used.
        as_of: Calculation date.
    """

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    sales: list[SalesDataPoint] = Field(default_factory=list)
    lead_time: LeadTimeData | None = None
    lead_time_days: int | None = Field(default=None, ge=0, le=365)
    is_new_item: bool = False
    spike: SpikeDetection | None = None
    events: list[SeasonalEvent] | None = None
    as_of: date_type | None = None


class RecommendedDaysRequest(BaseModel):
    """Request body for POST /safety-stock/recommended-days."""

    model_config = ConfigDict(extra="forbid")

    importance: ImportanceLevel
    supplier_reliability: float = Field(default=1.0, ge=0, le=1)
    near_season: bool = False


class RecommendedDaysResponse(BaseModel):
    """Recommended safety-stock cover in days."""

    importance: ImportanceLevel
    days: int
