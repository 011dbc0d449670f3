"""Pydantic schemas for inventory anomalies and root-cause analysis."""

from __future__ import annotations

from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.shared.schemas import InventoryPosition, SalesDataPoint, UrgencyLevel

AnomalyType = Literal["stockout", "overstock", "forecast_miss"]


class RootCauseFactor(BaseModel):
    """One contributing factor and how much it explains."""

    factor: str
    contribution: float = Field(..., ge=0, le=1)
    evidence: str = ""


class ParameterAdjustment(BaseModel):
    """Planning parameter change suggested by a root-cause finding."""

    parameter: str
    old_value: float
    new_value: float
    reason: str


class AnomalyEvent(BaseModel):
    """A detected inventory health issue."""

    id: str
    sku: str
    event_type: AnomalyType
    detected_at: date_type
    start_date: date_type
    end_date: date_type | None = None
    duration_days: int = 0
    financial_impact: float = 0.0
    unit_impact: int = 0
    root_cause: str
    root_cause_confidence: float = Field(..., ge=0, le=1)
    contributing_factors: list[RootCauseFactor] = Field(default_factory=list)
    automatic_adjustments: list[ParameterAdjustment] = Field(default_factory=list)
    is_resolved: bool = False
    notes: str = ""


class SkuSnapshot(BaseModel):
    """Current state of one SKU used for anomaly checks."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    position: InventoryPosition = Field(default_factory=InventoryPosition)
    sales: list[SalesDataPoint] = Field(
        default_factory=list, description="Daily sales covering at least the last 60 days"
    )
    price: float = Field(default=0.0, ge=0)
    unit_cost: float = Field(default=0.0, ge=0)
    last_po_delay_days: int | None = Field(
        default=None, description="Days the supplier's latest delivered PO arrived late"
    )
    is_spiking: bool = False
    spike_multiplier: float = Field(default=1.0, gt=0)


class RecommendedAction(BaseModel):
    """Follow-up for a group of anomalies."""

    priority: UrgencyLevel
    action: str
    affected_skus: int


class AnomalySummary(BaseModel):
    """Dashboard roll-up of detected anomalies."""

    total_anomalies: int
    by_type: dict[str, int]
    total_financial_impact: float
    recommended_actions: list[RecommendedAction]
    recent_anomalies: list[AnomalyEvent]


# =============================================================================
# Request / Response
# =============================================================================


class AnomalyDetectRequest(BaseModel):
    """Request body for anomaly detection."""

    model_config = ConfigDict(extra="forbid")

    snapshots: list[SkuSnapshot] = Field(default_factory=list)
    accuracy_records: list[ForecastAccuracyEntry] | None = Field(
        default=None,
        description="Recent forecast accuracy; stored records are used when omitted",
    )
    as_of: date_type | None = None


class AnomalyDetectResponse(BaseModel):
    """Detected anomalies and their summary."""

    anomalies: list[AnomalyEvent]
    summary: AnomalySummary
