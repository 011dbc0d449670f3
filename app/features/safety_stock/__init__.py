"""Safety-stock module: demand and lead-time variability buffers.

Exports:
    - calculate_safety_stock: Itemized safety stock with reasoning
    - demand_stats_from_sales: 90-day mean and population std
    - service_level_for_z, get_recommended_safety_stock_days
    - DemandStats, LeadTimeProfile, SafetyStockContext, SafetyStockCalculation
"""

from app.features.safety_stock.calculator import (
    calculate_safety_stock,
    demand_stats_from_sales,
    get_recommended_safety_stock_days,
    service_level_for_z,
)
from app.features.safety_stock.schemas import (
    DemandStats,
    LeadTimeProfile,
    SafetyStockCalculation,
    SafetyStockContext,
)

__all__ = [
    "DemandStats",
    "LeadTimeProfile",
    "SafetyStockCalculation",
    "SafetyStockContext",
    "calculate_safety_stock",
    "demand_stats_from_sales",
    "get_recommended_safety_stock_days",
    "service_level_for_z",
]
