"""Alerts module: urgency, reorder recommendations, alerts and weekly reports.

Exports:
    Urgency:
        - classify_urgency: Days figure to urgency level
        - calculate_days_of_supply: FBA, warehouse and total days of supply

    Recommendations:
        - generate_reorder_recommendation: Reorder point, order and FBA quantities

    Alerts:
        - generate_alerts: Build, suppress, batch and sort alerts
        - stockout_alert, seasonal_prep_alert, spike_alert, accuracy_alerts,
          supplier_alert, new_item_alert, deal_inventory_alert,
          goal_adjustment_alerts: Individual builders

    Reports:
        - generate_weekly_report
"""

from app.features.alerts.generator import (
    accuracy_alerts,
    deal_inventory_alert,
    generate_alerts,
    goal_adjustment_alerts,
    new_item_alert,
    seasonal_prep_alert,
    spike_alert,
    stockout_alert,
    supplier_alert,
)
from app.features.alerts.recommendation import generate_reorder_recommendation
from app.features.alerts.reports import generate_weekly_report
from app.features.alerts.schemas import AlertBatch, ForecastAlert, WeeklyReport
from app.features.alerts.urgency import calculate_days_of_supply, classify_urgency
from app.features.forecasting.schemas import DaysOfSupply, ReorderRecommendation

__all__ = [
    "AlertBatch",
    "DaysOfSupply",
    "ForecastAlert",
    "ReorderRecommendation",
    "WeeklyReport",
    "accuracy_alerts",
    "calculate_days_of_supply",
    "classify_urgency",
    "deal_inventory_alert",
    "generate_alerts",
    "generate_reorder_recommendation",
    "generate_weekly_report",
    "goal_adjustment_alerts",
    "new_item_alert",
    "seasonal_prep_alert",
    "spike_alert",
    "stockout_alert",
    "supplier_alert",
]
