"""Safety-stock service: resolves inputs at the edge and runs the calculator."""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import sku_context
from app.features.safety_stock.calculator import (
    calculate_safety_stock,
    demand_stats_from_sales,
    seasonal_context,
)
from app.features.safety_stock.schemas import (
    LeadTimeProfile,
    SafetyStockCalculation,
    SafetyStockRequest,
)
from app.features.seasonality.service import load_events_or_defaults

logger = structlog.get_logger()


def lead_time_profile(request: SafetyStockRequest) -> LeadTimeProfile | None:
    """Supplier analysis first, then a plain lead time, else None for defaults."""
    if request.lead_time is not None:
        return LeadTimeProfile.from_lead_time_data(request.lead_time)
    if request.lead_time_days is not None:
        return LeadTimeProfile(days=float(request.lead_time_days))
    return None


class SafetyStockService:
    """Builds calculator inputs from a request and the event catalog."""

    def __init__(self) -> None:
        """Initialize the safety-stock service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def calculate(
        self, db: AsyncSession | None, request: SafetyStockRequest
    ) -> SafetyStockCalculation:
        """Calculate safety stock for one SKU.

        Args:
            db: Database session for the event catalog, or None for defaults.
            request: SKU history and context.

        Returns:
            The itemized calculation.
        """
        as_of = request.as_of or date.today()
        with sku_context(request.sku):
            if request.events is None:
                events, _ = await load_events_or_defaults(db)
            else:
                events = request.events

            context = seasonal_context(
                events,
                request.sku,
                as_of,
                self.config,
                is_new_item=request.is_new_item,
                spike=request.spike,
            )
            calculation = calculate_safety_stock(
                sku=request.sku,
                demand=demand_stats_from_sales(request.sales) if request.sales else None,
                lead_time=lead_time_profile(request),
                context=context,
                config=self.config,
            )

        logger.info(
            "safety_stock.calculation_completed",
            sku=request.sku,
            importance=calculation.importance,
            final_safety_stock=calculation.final_safety_stock,
        )
        return calculation
