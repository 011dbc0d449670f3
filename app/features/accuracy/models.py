"""ORM models for learned ensemble weights and tracked forecast accuracy."""

from __future__ import annotations

import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.shared.models import TimestampMixin, sku_column


class ModelWeightsRecord(TimestampMixin, Base):
    """Per-SKU ensemble weights, one row per SKU.

    Attributes:
        id: Primary key.
        sku: SKU identifier (unique).
        prophet: Decomposition model weight.
        lstm: Pattern-match model weight.
        exponential_smoothing: Holt-Winters weight.
        arima: Autoregressive model weight.
        overall_mape: Holdout ensemble MAPE when the weights were learned.
        last_updated: When the weights were last learned.
    """

    __tablename__ = "model_weights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sku: Mapped[str] = sku_column(unique=True)

    prophet: Mapped[float] = mapped_column(Float, default=0.25)
    lstm: Mapped[float] = mapped_column(Float, default=0.25)
    exponential_smoothing: Mapped[float] = mapped_column(Float, default=0.25)
    arima: Mapped[float] = mapped_column(Float, default=0.25)

    overall_mape: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_updated: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint(
            "prophet >= 0 AND lstm >= 0 AND exponential_smoothing >= 0 AND arima >= 0",
            name="ck_model_weights_non_negative",
        ),
        CheckConstraint(
            "overall_mape IS NULL OR overall_mape >= 0",
            name="ck_model_weights_mape_non_negative",
        ),
    )


class ForecastAccuracyRecord(TimestampMixin, Base):
    """A forecast for one SKU-day compared against actual sales.

    Attributes:
        id: Primary key.
        sku: SKU identifier.
        forecast_date: The forecasted day.
        model: Model name or "ensemble".
        predicted_units: Forecast units.
        actual_units: Units actually sold.
        percentage_error: |predicted - actual| / actual.
        within_tolerance: Whether the error is within tolerance.
    """

    __tablename__ = "forecast_accuracy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sku: Mapped[str] = sku_column()
    forecast_date: Mapped[datetime.date] = mapped_column(Date, index=True)
    model: Mapped[str] = mapped_column(String(30), default="ensemble")

    predicted_units: Mapped[float] = mapped_column(Float)
    actual_units: Mapped[float] = mapped_column(Float)
    percentage_error: Mapped[float] = mapped_column(Float)
    within_tolerance: Mapped[bool] = mapped_column(Boolean)

    __table_args__ = (
        UniqueConstraint("sku", "forecast_date", "model", name="uq_forecast_accuracy_key"),
        Index("ix_forecast_accuracy_sku_date", "sku", "forecast_date"),
        CheckConstraint(
            "predicted_units >= 0 AND actual_units >= 0 AND percentage_error >= 0",
            name="ck_forecast_accuracy_non_negative",
        ),
    )
