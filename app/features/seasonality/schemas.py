"""Pydantic schemas for seasonal events and detected patterns.

Event windows are year-agnostic month/day pairs that recur annually and may
wrap the year boundary (startMonth > endMonth).
"""

from __future__ import annotations

import calendar
from datetime import date as date_type
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.shared.schemas import SalesDataPoint

EventType = Literal["micro_peak", "major_peak", "custom"]
MultiplierSource = Literal["base", "learned", "sku_specific", "none"]


def _validate_month_day(month: int, day: int, label: str) -> None:
    """Reject impossible month/day pairs (Feb 29 is allowed)."""
    if not 1 <= month <= 12:
        raise ValueError(f"{label}_month must be 1-12, got {month}")
    max_day = calendar.monthrange(2024, month)[1]  # leap year
    if not 1 <= day <= max_day:
        raise ValueError(f"{label}_day must be 1-{max_day} for month {month}, got {day}")


# =============================================================================
# Event Schemas
# =============================================================================


class EventWindow(BaseModel):
    """Recurring month/day window shared by events and their create payloads."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    start_month: int
    start_day: int
    end_month: int
    end_day: int

    @model_validator(mode="after")
    def validate_window(self) -> EventWindow:
        """Validate both endpoints are real calendar days."""
        _validate_month_day(self.start_month, self.start_day, "start")
        _validate_month_day(self.end_month, self.end_day, "end")
        return self

    @property
    def wraps_year(self) -> bool:
        """Whether the window crosses Dec 31."""
        return (self.start_month, self.start_day) > (self.end_month, self.end_day)


class SeasonalEvent(EventWindow):
    """A recurring calendar event with learned demand multipliers.

    Attributes:
        id: Persistent identifier (None for unsaved or default events).
        name: Unique human-readable name.
        event_type: micro_peak, major_peak or custom.
        base_multiplier: Declared uplift, always > 0.
        learned_multiplier: Multiplier learned from history, a blend candidate.
        sku_multipliers: Per-SKU overrides, SKU -> multiplier.
        is_active: Inactive events are ignored; events are never deleted.
    """

    id: int | None = None
    name: str = Field(..., min_length=1, max_length=100)
    event_type: EventType = "custom"
    base_multiplier: float = Field(..., gt=0)
    learned_multiplier: float | None = Field(default=None, gt=0)
    sku_multipliers: dict[str, float] = Field(default_factory=dict)
    is_active: bool = True

    @field_validator("sku_multipliers")
    @classmethod
    def validate_sku_multipliers(cls, v: dict[str, float]) -> dict[str, float]:
        """SKU overrides must be positive."""
        bad = [sku for sku, mult in v.items() if mult <= 0]
        if bad:
            raise ValueError(f"SKU multipliers must be > 0: {bad}")
        return v


class SeasonalEventCreate(EventWindow):
    """Request body for creating a seasonal event."""

    name: str = Field(..., min_length=1, max_length=100)
    event_type: EventType = "custom"
    base_multiplier: float = Field(..., gt=0, le=20)
    is_active: bool = True


class SkuMultiplierUpdate(BaseModel):
    """Request body for setting a per-SKU event multiplier."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    multiplier: float = Field(..., gt=0, le=20)


# =============================================================================
# Derived Patterns
# =============================================================================


class SeasonalityPattern(BaseModel):
    """Multiplier for one calendar month or one weekday.

    Exactly one of ``month`` (1-12) or ``day_of_week`` (0=Monday) is set.
    """

    month: int | None = Field(default=None, ge=1, le=12)
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    multiplier: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    sample_size: int = Field(..., ge=0)


class UpcomingEvent(BaseModel):
    """Active event starting within the lookahead horizon."""

    event: SeasonalEvent
    days_until: int = Field(..., ge=0)
    multiplier: float = Field(..., gt=0)
    source: MultiplierSource


class DetectedSeasonality(BaseModel):
    """Seasonality profile of one SKU."""

    sku: str
    has_seasonality: bool
    yearly_pattern: list[SeasonalityPattern] = Field(default_factory=list)
    weekly_pattern: list[SeasonalityPattern] = Field(default_factory=list)
    upcoming_events: list[UpcomingEvent] = Field(default_factory=list)


class SeasonalityMultiplier(BaseModel):
    """Multiplier applied to a single forecast date."""

    multiplier: float = Field(..., gt=0)
    event_name: str | None = None
    source: MultiplierSource


class LearnedMultiplier(BaseModel):
    """Multiplier learned for one event from multi-year history."""

    event_id: int | None
    event_name: str
    sku: str | None
    learned_multiplier: float = Field(..., gt=0)
    baseline: float
    years_seen: int = Field(..., ge=1)
    yearly_averages: dict[int, float]
    confidence: float = Field(..., ge=0, le=1)


class DetectedPattern(BaseModel):
    """Recurring undeclared spike window. Advisory only."""

    suggested_name: str
    start_month: int
    start_day: int
    end_month: int
    end_day: int
    avg_multiplier: float
    years_seen: int
    confidence: float = Field(..., ge=0, le=1)


# =============================================================================
# Request / Response
# =============================================================================


class SalesHistoryRequest(BaseModel):
    """Common request body carrying a SKU's sales history."""

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(..., min_length=1, max_length=100)
    sales: list[SalesDataPoint] = Field(default_factory=list)
    as_of: date_type | None = Field(default=None, description="Reference date, default today")


class PatternDetectRequest(BaseModel):
    """Request body for undeclared pattern mining."""

    model_config = ConfigDict(extra="forbid")

    sales: list[SalesDataPoint]
    min_spike_multiplier: float = Field(default=1.5, gt=1)
    min_recurrence: int = Field(default=2, ge=1)


class LearnResponse(BaseModel):
    """Result of a learning run."""

    sku: str | None
    learned: list[LearnedMultiplier]
    persisted: bool
    duration_ms: float


class SeedResponse(BaseModel):
    """Result of seeding default events."""

    created: int
    updated: int
    events: list[SeasonalEvent]
