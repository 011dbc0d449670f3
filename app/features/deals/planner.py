"""Deal lift estimation and pre-deal inventory planning.

Lift defaults by deal type are adjusted for Prime Day and the holiday
season. When the SKU has history for the same deal type, the historical
average replaces the default.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Sequence
from datetime import date, timedelta

import structlog

from app.core.config import ForecastConfig
from app.features.deals.schemas import (
    DealHistoryEntry,
    DealLiftSummary,
    DealPerformance,
    DealType,
    PreDealRecommendation,
    ScheduledDeal,
)
from app.shared.schemas import InventoryPosition, SalesDataPoint

logger = structlog.get_logger()

DEFAULT_DEAL_LIFTS: dict[str, float] = {
    "lightning": 3.0,
    "7day": 2.0,
    "coupon": 1.5,
    "prime_day": 5.0,
    "bfcm": 4.0,
    "custom": 2.0,
}
PRIME_DAY_FACTOR = 1.5
HOLIDAY_SEASON_FACTOR = 1.3
REQUIRED_UNITS_BUFFER = 1.2
BASELINE_DAYS = 30


def is_prime_day(d: date) -> bool:
    """Prime Day runs mid-July (Jul 10-17)."""
    return d.month == 7 and 10 <= d.day <= 17


def is_holiday_season(d: date) -> bool:
    """Holiday season runs Nov 15 - Dec 24."""
    return (d.month == 11 and d.day >= 15) or (d.month == 12 and d.day <= 24)


def deal_id_for(sku: str, start_date: date) -> str:
    return f"{sku}-{start_date.isoformat()}"


def expected_deal_lift(
    deal_type: DealType,
    start_date: date,
    history: Sequence[DealHistoryEntry] = (),
) -> float:
    """Expected sales multiplier for a deal.

    Args:
        deal_type: Kind of promotion.
        start_date: First day of the deal.
        history: Completed deals for the same SKU.

    Returns:
        Historical average lift for this deal type, or the contextual default.
    """
    similar = [h.sales_lift for h in history if h.deal_type == deal_type]
    if similar:
        return sum(similar) / len(similar)

    lift = DEFAULT_DEAL_LIFTS[deal_type]
    if is_prime_day(start_date):
        lift *= PRIME_DAY_FACTOR
    if is_holiday_season(start_date):
        lift *= HOLIDAY_SEASON_FACTOR
    return lift


def learn_deal_multipliers(history: Sequence[DealHistoryEntry]) -> dict[str, float]:
    """Average observed lift per deal type."""
    lifts: dict[str, list[float]] = defaultdict(list)
    for entry in history:
        lifts[entry.deal_type].append(entry.sales_lift)
    return {deal_type: sum(values) / len(values) for deal_type, values in lifts.items()}


def summarize_deal_history(history: Sequence[DealHistoryEntry]) -> DealLiftSummary:
    """Totals, average and best lift across a SKU's deals."""
    if not history:
        return DealLiftSummary(total_deals=0, average_lift=1.0, best_deal_type=None, best_lift=1.0)
    best = max(history, key=lambda h: h.sales_lift)
    return DealLiftSummary(
        total_deals=len(history),
        average_lift=sum(h.sales_lift for h in history) / len(history),
        best_deal_type=best.deal_type,
        best_lift=best.sales_lift,
        lifts_by_type=learn_deal_multipliers(history),
    )


def record_deal_performance(
    sku: str,
    deal_type: DealType,
    start_date: date,
    end_date: date,
    discount_percent: float,
    sales: Sequence[SalesDataPoint],
    history: Sequence[DealHistoryEntry] = (),
) -> tuple[DealPerformance, DealHistoryEntry]:
    """Measure the lift of a completed deal against the 30 days before it.

    Returns:
        Tuple of (performance snapshot, history entry to store).
    """
    baseline_start = start_date - timedelta(days=BASELINE_DAYS)
    baseline_units = sum(p.units for p in sales if baseline_start <= p.date < start_date)
    baseline_velocity = baseline_units / BASELINE_DAYS

    deal_units = sum(p.units for p in sales if start_date <= p.date <= end_date)
    duration = max(1, (end_date - start_date).days)
    deal_velocity = deal_units / duration
    actual_lift = deal_velocity / baseline_velocity if baseline_velocity > 0 else 1.0

    performance = DealPerformance(
        deal_id=deal_id_for(sku, start_date),
        sku=sku,
        deal_type=deal_type,
        start_date=start_date,
        end_date=end_date,
        discount_percent=discount_percent,
        actual_sales_lift=actual_lift,
        expected_sales_lift=expected_deal_lift(deal_type, start_date, history),
        day_of_week=start_date.weekday(),
        is_holiday_season=is_holiday_season(start_date),
        is_prime_day=is_prime_day(start_date),
    )
    entry = DealHistoryEntry(
        deal_type=deal_type,
        start_date=start_date,
        end_date=end_date,
        discount_percent=discount_percent,
        baseline_velocity=baseline_velocity,
        deal_velocity=deal_velocity,
        sales_lift=actual_lift,
        total_units_sold=deal_units,
    )
    logger.info(
        "deals.performance_recorded",
        sku=sku,
        deal_type=deal_type,
        actual_lift=round(actual_lift, 3),
        expected_lift=round(performance.expected_sales_lift, 3),
    )
    return performance, entry


def schedule_deal(
    sku: str,
    deal_type: DealType,
    start_date: date,
    end_date: date,
    discount_percent: float,
    velocity: float,
    position: InventoryPosition,
    config: ForecastConfig,
    history: Sequence[DealHistoryEntry] = (),
) -> ScheduledDeal:
    """Plan the FBA units a deal needs.

    Required units carry a 20% buffer over velocity x lift x duration. Units
    must reach FBA one worst-case receiving period before the start.
    """
    lift = expected_deal_lift(deal_type, start_date, history)
    duration = max(1, (end_date - start_date).days)
    required = math.ceil(velocity * lift * duration * REQUIRED_UNITS_BUFFER)
    current = position.fba_units
    shortfall = max(0, math.ceil(required - current))
    return ScheduledDeal(
        deal_id=deal_id_for(sku, start_date),
        sku=sku,
        deal_type=deal_type,
        start_date=start_date,
        end_date=end_date,
        discount_percent=discount_percent,
        expected_sales_lift=lift,
        required_units=required,
        current_fba_units=current,
        shortfall=shortfall,
        send_by_date=start_date - timedelta(days=config.fba.worst_case_receiving_days),
    )


def pre_deal_recommendation(
    deal: ScheduledDeal,
    velocity: float,
    history_count: int,
    as_of: date,
) -> PreDealRecommendation:
    """Turn a scheduled deal into a prep recommendation."""
    send_by = deal.send_by_date or deal.start_date
    estimated_sales = round(velocity * deal.expected_sales_lift * deal.duration_days)
    confidence = min(0.9, 0.5 + history_count * 0.1)

    if deal.shortfall > 0:
        days_until_send_by = (send_by - as_of).days
        if days_until_send_by <= 0:
            days_until_start = (deal.start_date - as_of).days
            recommendation = (
                f"URGENT: Send {deal.shortfall} units to FBA immediately. "
                f"Deal starts in {days_until_start} days."
            )
        else:
            recommendation = (
                f"Send {deal.shortfall} units to FBA by {send_by.isoformat()} "
                f"for {deal.deal_type} deal on {deal.start_date.isoformat()}."
            )
    else:
        recommendation = (
            f"Inventory sufficient for {deal.deal_type} deal. "
            f"Current: {deal.current_fba_units:.0f} units, Required: {deal.required_units} units."
        )

    return PreDealRecommendation(
        recommendation=recommendation,
        required_units=deal.required_units,
        current_units=deal.current_fba_units,
        shortfall=deal.shortfall,
        send_by_date=send_by,
        estimated_deal_sales=estimated_sales,
        confidence=confidence,
    )


def deal_multiplier_for_date(d: date, deals: Sequence[ScheduledDeal]) -> float:
    """Largest expected lift among deals covering the date, else 1.0."""
    lifts = [deal.expected_sales_lift for deal in deals if deal.covers(d)]
    return max(lifts) if lifts else 1.0
