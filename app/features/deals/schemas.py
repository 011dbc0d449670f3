"""Pydantic schemas for scheduled deals and deal performance."""

from __future__ import annotations

from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.shared.schemas import InventoryPosition, SalesDataPoint

DealType = Literal["lightning", "7day", "coupon", "prime_day", "bfcm", "custom"]


class DealWindow(BaseModel):
    """Start/end dates of a promotion, end inclusive."""

    model_config = ConfigDict(frozen=True)

    start_date: date_type
    end_date: date_type

    @model_validator(mode="after")
    def validate_dates(self) -> DealWindow:
        """End must not precede start."""
        if self.end_date < self.start_date:
            raise ValueError(
                f"end_date ({self.end_date}) must be on or after start_date ({self.start_date})"
            )
        return self

    @property
    def duration_days(self) -> int:
        """Length in days, at least 1."""
        return max(1, (self.end_date - self.start_date).days)

    def covers(self, d: date_type) -> bool:
        """Whether the date falls inside the window."""
        return self.start_date <= d <= self.end_date


class DealHistoryEntry(DealWindow):
    """Observed outcome of a completed deal."""

    deal_type: DealType
    discount_percent: float = Field(default=0.0, ge=0, le=100)
    baseline_velocity: float = Field(default=0.0, ge=0)
    deal_velocity: float = Field(default=0.0, ge=0)
    sales_lift: float = Field(..., gt=0)
    total_units_sold: float = Field(default=0.0, ge=0)


class DealPerformance(DealWindow):
    """Actual vs expected lift of a completed deal."""

    deal_id: str
    sku: str
    deal_type: DealType
    discount_percent: float
    actual_sales_lift: float
    expected_sales_lift: float
    day_of_week: int = Field(..., ge=0, le=6)
    is_holiday_season: bool
    is_prime_day: bool


class ScheduledDeal(DealWindow):
    """Upcoming deal with its expected lift and FBA inventory requirement."""

    deal_id: str
    sku: str
    deal_type: DealType
    discount_percent: float = 0.0
    expected_sales_lift: float = Field(..., gt=0)
    required_units: int = Field(default=0, ge=0)
    current_fba_units: float = Field(default=0.0, ge=0)
    shortfall: int = Field(default=0, ge=0)
    send_by_date: date_type | None = None


class PreDealRecommendation(BaseModel):
    """Human-readable prep advice for an upcoming deal."""

    recommendation: str
    required_units: int
    current_units: float
    shortfall: int
    send_by_date: date_type
    estimated_deal_sales: int
    confidence: float = Field(..., ge=0, le=1)


class DealLiftSummary(BaseModel):
    """Per-SKU summary of historical deal performance."""

    total_deals: int
    average_lift: float
    best_deal_type: DealType | None
    best_lift: float
    lifts_by_type: dict[str, float] = Field(default_factory=dict)


# =============================================================================
# Request / Response
# =============================================================================


class ScheduleDealRequest(BaseModel):
    """Request body for planning inventory ahead of a deal."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    deal_type: DealType
    start_date: date_type
    end_date: date_type
    discount_percent: float = Field(default=0.0, ge=0, le=100)
    sales: list[SalesDataPoint] = Field(default_factory=list, description="Recent daily sales")
    inventory: InventoryPosition = Field(default_factory=InventoryPosition)
    history: list[DealHistoryEntry] = Field(default_factory=list)
    as_of: date_type | None = None


class ScheduleDealResponse(BaseModel):
    """Scheduled deal plus prep recommendation."""

    deal: ScheduledDeal
    recommendation: PreDealRecommendation
    history_summary: DealLiftSummary
