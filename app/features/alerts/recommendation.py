"""Reorder point, order quantities and urgency for one SKU."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date, timedelta

import numpy as np
import structlog

from app.core.config import ForecastConfig
from app.features.forecasting.schemas import ReorderRecommendation
from app.features.alerts.urgency import calculate_days_of_supply, classify_urgency
from app.shared.schemas import InventoryPosition

logger = structlog.get_logger()


def generate_reorder_recommendation(
    sku: str,
    forecasts: Sequence[float],
    safety_stock: int,
    position: InventoryPosition,
    lead_time_days: int,
    config: ForecastConfig,
    as_of: date,
) -> ReorderRecommendation:
    """Turn daily forecasts into ordering quantities.

    Args:
        sku: SKU identifier.
        forecasts: Final daily forecasts over the horizon.
        safety_stock: Final safety stock in units.
        position: Current inventory.
        lead_time_days: Supplier lead time used for the reorder point.
        config: Targets, FBA receiving time and urgency cutoffs.
        as_of: Planning date.

    Returns:
        ReorderRecommendation. Urgency is judged on the days left before an
        order must be placed: total days of supply minus lead time minus
        ``alerts.order_safety_days``.
    """
    avg = float(np.mean(forecasts)) if len(forecasts) else 0.0
    targets = config.targets

    reorder_point = math.ceil(avg * lead_time_days + safety_stock)
    order_qty = max(0, math.ceil(math.ceil(avg * targets.total) - position.total_units))
    fba_target = math.ceil(avg * (targets.fba + config.fba.receiving_days))
    fba_qty = min(
        max(0, math.ceil(fba_target - position.fba_units)),
        math.floor(position.warehouse_available),
    )

    days_of_supply = calculate_days_of_supply(position, avg)
    slack = days_of_supply.total - lead_time_days - config.alerts.order_safety_days
    urgency = classify_urgency(slack, config)
    stockout_date = (
        as_of + timedelta(days=math.floor(days_of_supply.total))
        if days_of_supply.total < config.alerts.stockout_horizon_days
        else None
    )

    reasoning = [
        f"Selling {avg:.1f} units/day",
        f"{round(days_of_supply.total)} days of supply remaining",
        f"Safety stock: {safety_stock} units",
    ]
    if order_qty > 0:
        reasoning.append(
            f"Order {order_qty} units to reach {targets.total}-day target "
            f"(Lead time: {lead_time_days} days)"
        )
    if fba_qty > 0:
        reasoning.append(f"Send {fba_qty} units to FBA to reach {targets.fba}-day target")

    logger.debug(
        "alerts.reorder_recommendation",
        sku=sku,
        urgency=urgency,
        order_qty=order_qty,
        fba_qty=fba_qty,
    )
    return ReorderRecommendation(
        sku=sku,
        avg_daily_forecast=avg,
        lead_time_days=lead_time_days,
        safety_stock=safety_stock,
        reorder_point=reorder_point,
        recommended_order_qty=order_qty,
        recommended_fba_qty=fba_qty,
        days_of_supply=days_of_supply,
        urgency=urgency,
        stockout_date=stockout_date,
        reasoning=reasoning,
    )
