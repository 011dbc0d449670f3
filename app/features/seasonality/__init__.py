"""Seasonality module: event catalog, pattern detection and multiplier learning.

Exports:
    Windows:
        - is_date_in_event: Year-agnostic window membership (handles wrapping)
        - days_until_event: Next-occurrence days until an event starts

    Detection:
        - detect_seasonality: Monthly/weekday patterns plus upcoming events
        - get_upcoming_events, effective_event_multiplier
        - get_seasonality_multiplier_for_date

    Learning:
        - learn_seasonal_multipliers: Recency-weighted multi-year learning
        - detect_new_seasonal_patterns: Advisory mining of undeclared spikes
        - update_sku_event_multiplier, create_seasonal_event

    Schemas:
        - SeasonalEvent, SeasonalEventCreate, SeasonalityPattern
        - DetectedSeasonality, UpcomingEvent, LearnedMultiplier, DetectedPattern
"""

from app.features.seasonality.defaults import DEFAULT_EVENTS, default_seasonal_events
from app.features.seasonality.detector import (
    detect_seasonality,
    effective_event_multiplier,
    get_seasonality_multiplier_for_date,
    get_upcoming_events,
)
from app.features.seasonality.learner import (
    create_seasonal_event,
    detect_new_seasonal_patterns,
    learn_seasonal_multipliers,
    update_sku_event_multiplier,
)
from app.features.seasonality.schemas import (
    DetectedPattern,
    DetectedSeasonality,
    LearnedMultiplier,
    SeasonalEvent,
    SeasonalEventCreate,
    SeasonalityMultiplier,
    SeasonalityPattern,
    UpcomingEvent,
)
from app.features.seasonality.windows import days_until_event, is_date_in_event

__all__ = [
    "DEFAULT_EVENTS",
    "DetectedPattern",
    "DetectedSeasonality",
    "LearnedMultiplier",
    "SeasonalEvent",
    "SeasonalEventCreate",
    "SeasonalityMultiplier",
    "SeasonalityPattern",
    "UpcomingEvent",
    "create_seasonal_event",
    "days_until_event",
    "default_seasonal_events",
    "detect_new_seasonal_patterns",
    "detect_seasonality",
    "effective_event_multiplier",
    "get_seasonality_multiplier_for_date",
    "get_upcoming_events",
    "is_date_in_event",
    "learn_seasonal_multipliers",
    "update_sku_event_multiplier",
]
