"""Anomalies module: stockout, overstock and forecast-miss detection.

Exports:
    - detect_anomalies: Run every check over SKU snapshots
    - anomaly_summary: Counts, financial impact and recommended actions
    - AnomalyEvent, SkuSnapshot, AnomalySummary: Schemas
"""

from app.features.anomalies.detector import (
    analyze_overstock_cause,
    analyze_stockout_cause,
    anomaly_summary,
    detect_anomalies,
    detect_forecast_misses,
    detect_overstock,
    detect_stockout,
)
from app.features.anomalies.schemas import AnomalyEvent, AnomalySummary, SkuSnapshot

__all__ = [
    "AnomalyEvent",
    "AnomalySummary",
    "SkuSnapshot",
    "analyze_overstock_cause",
    "analyze_stockout_cause",
    "anomaly_summary",
    "detect_anomalies",
    "detect_forecast_misses",
    "detect_overstock",
    "detect_stockout",
]
