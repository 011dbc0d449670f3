"""Shared utilities used across 3+ features."""

from app.shared.models import TimestampMixin, sku_column
from app.shared.schemas import (
    SEVERITY_ORDER,
    URGENCY_ORDER,
    InventoryPosition,
    SalesDataPoint,
    Severity,
    UrgencyLevel,
)
from app.shared.utils import (
    clamp,
    coefficient_of_variation,
    fill_missing_days,
    safe_ratio,
    trailing_velocity,
    units_array,
)

__all__ = [
    "SEVERITY_ORDER",
    "URGENCY_ORDER",
    "InventoryPosition",
    "SalesDataPoint",
    "Severity",
    "TimestampMixin",
    "UrgencyLevel",
    "clamp",
    "coefficient_of_variation",
    "fill_missing_days",
    "safe_ratio",
    "sku_column",
    "trailing_velocity",
    "units_array",
]
