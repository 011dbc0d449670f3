"""Seasonal event ORM model.

Per-SKU overrides are stored as a JSONB object (SKU -> multiplier) and
converted to a typed mapping by the repository.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Float, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.shared.models import TimestampMixin


class EventTypeORM(str, Enum):
    """Valid seasonal event types."""

    MICRO_PEAK = "micro_peak"
    MAJOR_PEAK = "major_peak"
    CUSTOM = "custom"


class SeasonalEventRecord(TimestampMixin, Base):
    """Recurring calendar event with learned multipliers.

    Events are deactivated, never deleted.

    Attributes:
        id: Primary key.
        name: Unique event name.
        event_type: micro_peak, major_peak or custom.
        start_month: Window start month (1-12).
        start_day: Window start day.
        end_month: Window end month (1-12).
        end_day: Window end day.
        base_multiplier: Declared uplift, > 0.
        learned_multiplier: Multiplier learned from history (nullable).
        sku_multipliers: JSONB mapping of SKU -> multiplier.
        is_active: Inactive events are ignored by the engine.
    """

    __tablename__ = "seasonal_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    event_type: Mapped[str] = mapped_column(String(20), default=EventTypeORM.CUSTOM.value)

    # Window
    start_month: Mapped[int] = mapped_column(Integer)
    start_day: Mapped[int] = mapped_column(Integer)
    end_month: Mapped[int] = mapped_column(Integer)
    end_day: Mapped[int] = mapped_column(Integer)

    # Multipliers
    base_multiplier: Mapped[float] = mapped_column(Float)
    learned_multiplier: Mapped[float | None] = mapped_column(Float, nullable=True)
    sku_multipliers: Mapped[dict[str, float]] = mapped_column(JSONB, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    __table_args__ = (
        Index("ix_seasonal_event_sku_multipliers_gin", "sku_multipliers", postgresql_using="gin"),
        CheckConstraint("base_multiplier > 0", name="ck_seasonal_event_base_multiplier_positive"),
        CheckConstraint(
            "learned_multiplier IS NULL OR learned_multiplier > 0",
            name="ck_seasonal_event_learned_multiplier_positive",
        ),
        CheckConstraint(
            "start_month BETWEEN 1 AND 12 AND end_month BETWEEN 1 AND 12",
            name="ck_seasonal_event_valid_months",
        ),
        CheckConstraint(
            "start_day BETWEEN 1 AND 31 AND end_day BETWEEN 1 AND 31",
            name="ck_seasonal_event_valid_days",
        ),
        CheckConstraint(
            "event_type IN ('micro_peak', 'major_peak', 'custom')",
            name="ck_seasonal_event_valid_type",
        ),
    )
