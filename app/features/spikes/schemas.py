"""Pydantic schemas for sales spike detection."""

from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.shared.schemas import InventoryPosition, SalesDataPoint, UrgencyLevel

SpikeCause = Literal["ads", "deal", "listing_change", "organic", "unknown"]


class SpikeSignals(BaseModel):
    """External signals used to attribute a spike to a cause.

    Attributes:
        ad_spend_change_pct: Ad spend change around the spike start, in percent.
        listing_change_date: Date of the most recent listing edit.
        active_deal: Identifier of a deal running at the spike start.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ad_spend_change_pct: float | None = None
    listing_change_date: date_type | None = None
    active_deal: str | None = None


class SpikeCauseDetails(BaseModel):
    """Signals that supported the chosen cause."""

    ad_spend_change_pct: float | None = None
    listing_change_date: date_type | None = None
    active_deal: str | None = None


class InventoryImpact(BaseModel):
    """Effect of the new velocity on stock cover."""

    days_of_supply_at_new_rate: float
    additional_units_needed: int = Field(..., ge=0)
    urgency: UrgencyLevel


class DecayPoint(BaseModel):
    """Projected multiplier some days from now."""

    days_from_now: int = Field(..., ge=0)
    projected_multiplier: float = Field(..., ge=1)


class SpikeDetection(BaseModel):
    """Spike status of one SKU.

    A not-spiking result carries a neutral multiplier of 1.0, cause
    ``unknown`` and an empty decay projection.
    """

    sku: str
    is_spiking: bool
    spike_multiplier: float = 1.0
    days_spiking: int = 0
    spike_start_date: date_type | None = None
    probable_cause: SpikeCause = "unknown"
    cause_confidence: float = Field(default=0.0, ge=0, le=1)
    cause_details: SpikeCauseDetails = Field(default_factory=SpikeCauseDetails)
    current_velocity: float = 0.0
    baseline_velocity: float = 0.0
    confidence: float = Field(default=0.0, ge=0, le=1)
    inventory_impact: InventoryImpact = Field(
        default_factory=lambda: InventoryImpact(
            days_of_supply_at_new_rate=999, additional_units_needed=0, urgency="ok"
        )
    )
    projected_decay: list[DecayPoint] = Field(default_factory=list)


class SpikeAlert(BaseModel):
    """Short message summarising a spike for operators."""

    sku: str
    message: str
    urgency: UrgencyLevel


# =============================================================================
# Request / Response
# =============================================================================


class SpikeDetectRequest(BaseModel):
    """Request body for spike detection."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    sales: list[SalesDataPoint] = Field(default_factory=list)
    signals: SpikeSignals = Field(default_factory=SpikeSignals)
    inventory: InventoryPosition = Field(default_factory=InventoryPosition)
    lead_time_days: int | None = Field(default=None, ge=0, description="Supplier lead time, default 30")
    as_of: date_type | None = None


class SpikeDetectResponse(BaseModel):
    """Spike detection with an optional operator alert."""

    detection: SpikeDetection
    alert: SpikeAlert | None = None
