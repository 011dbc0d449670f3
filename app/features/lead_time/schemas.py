"""Pydantic schemas for supplier lead-time reliability."""

from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.shared.schemas import Severity

LeadTimeAlertType = Literal["avg_increase", "variance_increase", "reliability_drop"]
SupplierGrade = Literal["A", "B", "C", "D", "F"]


class PurchaseOrderRecord(BaseModel):
    """One purchase order from a supplier.

    Attributes:
        po_id: Optional purchase order reference.
        ordered_at: Order date.
        stated_lead_time_days: Lead time promised on this order; overrides
            the supplier's stated lead time for the on-time check.
        actual_delivery_at: Delivery date, None while still open.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    po_id: str | None = Field(default=None, max_length=100)
    ordered_at: date_type
    stated_lead_time_days: int | None = Field(default=None, ge=0)
    actual_delivery_at: date_type | None = None

    @model_validator(mode="after")
    def validate_delivery(self) -> "PurchaseOrderRecord":
        """Delivery cannot precede the order."""
        if self.actual_delivery_at is not None and self.actual_delivery_at < self.ordered_at:
            raise ValueError(
                f"actual_delivery_at ({self.actual_delivery_at}) is before "
                f"ordered_at ({self.ordered_at})"
            )
        return self

    @property
    def lead_time_days(self) -> int | None:
        """Days from order to delivery, None if not delivered."""
        if self.actual_delivery_at is None:
            return None
        return (self.actual_delivery_at - self.ordered_at).days


class LeadTimeData(BaseModel):
    """Observed lead-time performance of one supplier.

    Attributes:
        stated_lead_time: Days the supplier promises.
        avg_actual_lead_time: Mean observed lead time.
        worst_case_lead_time: 95th percentile observed lead time.
        on_time_rate: Share of orders delivered within the stated time.
        lead_time_variance: Population standard deviation of lead times.
        reliability_score: Composite of on-time rate and variability.
        is_getting_worse: Recent orders are more than the worsening threshold slower.
        trend_pct: Recent vs. older average change, in percent.
        po_count: Delivered orders used.
    """

    supplier_id: str
    supplier_name: str
    stated_lead_time: int = Field(..., ge=1)
    avg_actual_lead_time: float = Field(..., ge=0)
    worst_case_lead_time: float = Field(..., ge=0)
    on_time_rate: float = Field(..., ge=0, le=1)
    lead_time_variance: float = Field(..., ge=0)
    reliability_score: float = Field(..., ge=0, le=1)
    avg_fba_receiving_time: float = Field(..., ge=0)
    worst_case_fba_receiving_time: float = Field(..., ge=0)
    is_getting_worse: bool = False
    trend_pct: float = 0.0
    po_count: int = Field(default=0, ge=0)
    last_calculated: date_type


class LeadTimeAlert(BaseModel):
    """A material deterioration in supplier lead times."""

    supplier_id: str
    supplier_name: str
    alert_type: LeadTimeAlertType
    severity: Severity
    message: str
    previous_value: float
    current_value: float
    recommended_action: str


class SupplierScorecard(BaseModel):
    """Letter-graded summary of a supplier's lead-time performance."""

    supplier_id: str
    supplier_name: str
    stated_lead_time: int
    actual_lead_time: int
    worst_case_lead_time: int
    trend: str
    reliability_score: int = Field(..., ge=0, le=100, description="Percent")
    on_time_rate: int = Field(..., ge=0, le=100, description="Percent")
    variance_days: int = Field(..., ge=0)
    grade: SupplierGrade
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


# =============================================================================
# Request / Response
# =============================================================================


class LeadTimeAnalyzeRequest(BaseModel):
    """Request body for lead-time analysis and scorecards."""

    model_config = ConfigDict(extra="forbid")

    supplier_id: str = Field(..., min_length=1, max_length=100)
    supplier_name: str = Field(..., min_length=1, max_length=200)
    stated_lead_time: int = Field(default=30, ge=1, le=365)
    purchase_orders: list[PurchaseOrderRecord] = Field(default_factory=list)
    as_of: date_type | None = None


class LeadTimeAnalyzeResponse(BaseModel):
    """Lead-time analysis with the derived planning lead times and alerts."""

    data: LeadTimeData
    effective_lead_time: int
    total_lead_time: int
    alerts: list[LeadTimeAlert] = Field(default_factory=list)
