"""Pydantic schemas for alerts and weekly reports."""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.anomalies.schemas import AnomalyEvent
from app.features.deals.schemas import ScheduledDeal
from app.features.forecasting.schemas import ReorderRecommendation
from app.features.lead_time.schemas import LeadTimeAlert
from app.features.new_items.schemas import RecalibrationResult
from app.features.seasonality.schemas import SeasonalEvent
from app.features.spikes.schemas import SpikeDetection
from app.shared.schemas import InventoryPosition, Severity, UrgencyLevel

AlertType = Literal[
    "stockout_imminent",
    "seasonal_prep",
    "spike_detected",
    "forecast_accuracy_low",
    "supplier_reliability",
    "new_item_deviation",
    "deal_inventory",
    "goal_adjustment",
]
AccuracyTrend = Literal["improving", "stable", "declining"]
PrepStatus = Literal["ready", "needs_attention", "at_risk"]


class ForecastAlert(BaseModel):
    """An actionable alert for the purchasing workflow."""

    id: str
    sku: str | None = None
    alert_type: AlertType
    severity: Severity
    urgency: UrgencyLevel
    title: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
    recommended_action: str
    action_deadline: date_type | None = None
    created_at: date_type

    @property
    def key(self) -> str:
        """Duplicate-suppression key: type plus SKU, or ``global``."""
        return f"{self.alert_type}-{self.sku or 'global'}"


class AlertSummary(BaseModel):
    """Counts of the emitted alerts."""

    total: int
    by_severity: dict[str, int]
    by_type: dict[str, int]


class AlertBatch(BaseModel):
    """Alerts after suppression, batching and sorting."""

    alerts: list[ForecastAlert]
    summary: AlertSummary
    suppressed: int = 0


class SkuStockStatus(BaseModel):
    """Stock and velocity of one SKU, as used by alert checks."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    position: InventoryPosition = Field(default_factory=InventoryPosition)
    velocity: float = Field(default=0.0, ge=0, description="Units/day, typically 30-day average")
    lead_time_days: int = Field(default=30, ge=0)


class AlertInputs(BaseModel):
    """Already-computed results the alert generator draws from."""

    inventory: list[SkuStockStatus] = Field(default_factory=list)
    spikes: list[SpikeDetection] = Field(default_factory=list)
    accuracy_records: list[ForecastAccuracyEntry] = Field(default_factory=list)
    supplier_alerts: list[LeadTimeAlert] = Field(default_factory=list)
    recalibrations: list[RecalibrationResult] = Field(default_factory=list)
    deals: list[ScheduledDeal] = Field(default_factory=list)
    anomalies: list[AnomalyEvent] = Field(default_factory=list)


class OrderLine(BaseModel):
    """A SKU that needs ordering in the weekly report."""

    sku: str
    urgency: UrgencyLevel
    recommended_qty: int
    reason: str


class EventPrep(BaseModel):
    """Preparation status for an upcoming event."""

    event: str
    days_until: int
    prep_status: PrepStatus
    skus_affected: int


class WeeklyReport(BaseModel):
    """Weekly planning digest."""

    week_of: date_type
    forecast_accuracy: float | None = Field(
        default=None, description="(1 - MAPE) x 100 over the week, None without records"
    )
    accuracy_trend: AccuracyTrend
    skus_requiring_orders: list[OrderLine]
    upcoming_events: list[EventPrep]
    anomalies_detected: int
    anomalies_summary: list[str]


# =============================================================================
# Request / Response
# =============================================================================


class RaisedAlert(BaseModel):
    """An alert raised earlier, for duplicate suppression."""

    key: str = Field(..., description="type-sku or type-global")
    raised_at: datetime


class GenerateAlertsRequest(AlertInputs):
    """Request body for alert generation."""

    model_config = ConfigDict(extra="forbid")

    events: list[SeasonalEvent] | None = Field(
        default=None, description="Event catalog; the stored catalog is used when omitted"
    )
    recent_alert_keys: list[str] = Field(
        default_factory=list,
        description="Keys (type-sku or type-global) of alerts raised in the suppression window",
    )
    recent_alerts: list[RaisedAlert] = Field(
        default_factory=list,
        description="Earlier alerts; those inside ALERT_SUPPRESS_DUPLICATE_HOURS are suppressed",
    )
    as_of: date_type | None = None


class WeeklyReportRequest(BaseModel):
    """Request body for the weekly report."""

    model_config = ConfigDict(extra="forbid")

    week_of: date_type | None = Field(default=None, description="Last day of the reported week")
    accuracy_records: list[ForecastAccuracyEntry] | None = Field(
        default=None, description="Records of the week; stored records are used when omitted"
    )
    previous_records: list[ForecastAccuracyEntry] | None = None
    recommendations: list[ReorderRecommendation] = Field(default_factory=list)
    inventory: list[SkuStockStatus] = Field(default_factory=list)
    anomalies: list[AnomalyEvent] = Field(default_factory=list)
    events: list[SeasonalEvent] | None = None
