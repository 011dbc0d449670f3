"""New-items module: analog-SKU forecasts for recently launched products.

Exports:
    - find_analog_sku: Best-scoring existing SKU by category, price, brand, supplier
    - forecast_new_item: Base velocity, watch status and check cadence
    - recalibrate_new_item: Blend the forecast toward observed sales
    - ProductProfile, CandidateProduct, AnalogSkuMatch, NewItemForecast: Schemas
"""

from app.features.new_items.matcher import (
    days_since_launch,
    find_analog_sku,
    forecast_new_item,
    recalibrate_new_item,
)
from app.features.new_items.schemas import (
    AnalogSkuMatch,
    CandidateProduct,
    NewItemForecast,
    ProductProfile,
    RecalibrationResult,
)

__all__ = [
    "AnalogSkuMatch",
    "CandidateProduct",
    "NewItemForecast",
    "ProductProfile",
    "RecalibrationResult",
    "days_since_launch",
    "find_analog_sku",
    "forecast_new_item",
    "recalibrate_new_item",
]
