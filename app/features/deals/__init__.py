"""Deals module: promotion lift estimation and pre-deal inventory planning."""

from app.features.deals.planner import (
    DEFAULT_DEAL_LIFTS,
    deal_multiplier_for_date,
    expected_deal_lift,
    learn_deal_multipliers,
    pre_deal_recommendation,
    record_deal_performance,
    schedule_deal,
)
from app.features.deals.schemas import (
    DealHistoryEntry,
    DealPerformance,
    DealType,
    PreDealRecommendation,
    ScheduledDeal,
)

__all__ = [
    "DEFAULT_DEAL_LIFTS",
    "DealHistoryEntry",
    "DealPerformance",
    "DealType",
    "PreDealRecommendation",
    "ScheduledDeal",
    "deal_multiplier_for_date",
    "expected_deal_lift",
    "learn_deal_multipliers",
    "pre_deal_recommendation",
    "record_deal_performance",
    "schedule_deal",
]
