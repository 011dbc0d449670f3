"""Urgency classification and days of supply."""

from app.core.config import ForecastConfig
from app.features.forecasting.schemas import DaysOfSupply
from app.shared.schemas import InventoryPosition, UrgencyLevel

NO_VELOCITY_DAYS = 999.0


def classify_urgency(days: float, config: ForecastConfig) -> UrgencyLevel:
    """Map a days figure onto the ascending urgency cutoffs."""
    thresholds = config.urgency_thresholds
    if days <= thresholds.critical:
        return "critical"
    if days <= thresholds.high:
        return "high"
    if days <= thresholds.medium:
        return "medium"
    if days <= thresholds.low:
        return "low"
    return "ok"


def calculate_days_of_supply(position: InventoryPosition, velocity: float) -> DaysOfSupply:
    """Days of supply at FBA (available + inbound), warehouse and in total.

    Every location reports 999 days when velocity is not positive.
    """
    if velocity <= 0:
        return DaysOfSupply(
            fba=NO_VELOCITY_DAYS, warehouse=NO_VELOCITY_DAYS, total=NO_VELOCITY_DAYS
        )
    return DaysOfSupply(
        fba=position.fba_units / velocity,
        warehouse=position.warehouse_available / velocity,
        total=position.total_units / velocity,
    )
