"""Lead-time module: supplier reliability from purchase-order history.

Exports:
    - analyze_supplier_lead_time: Stated, average and worst-case lead times
    - effective_lead_time, total_lead_time: Planning lead times
    - check_lead_time_alerts: Drift, variability and reliability alerts
    - supplier_scorecard: A-F supplier grade
    - PurchaseOrderRecord, LeadTimeData, LeadTimeAlert, SupplierScorecard
"""

from app.features.lead_time.analyzer import (
    analyze_supplier_lead_time,
    check_lead_time_alerts,
    effective_lead_time,
    supplier_scorecard,
    total_lead_time,
)
from app.features.lead_time.schemas import (
    LeadTimeAlert,
    LeadTimeData,
    PurchaseOrderRecord,
    SupplierScorecard,
)

__all__ = [
    "LeadTimeAlert",
    "LeadTimeData",
    "PurchaseOrderRecord",
    "SupplierScorecard",
    "analyze_supplier_lead_time",
    "check_lead_time_alerts",
    "effective_lead_time",
    "supplier_scorecard",
    "total_lead_time",
]
