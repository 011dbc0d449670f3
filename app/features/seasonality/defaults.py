"""Default seasonal event catalog."""

from app.features.seasonality.schemas import SeasonalEvent, SeasonalEventCreate

DEFAULT_EVENTS: tuple[SeasonalEventCreate, ...] = (
    SeasonalEventCreate(
        name="Valentine's Day",
        event_type="micro_peak",
        start_month=2,
        start_day=1,
        end_month=2,
        end_day=14,
        base_multiplier=2.0,
    ),
    SeasonalEventCreate(
        name="Mother's Day",
        event_type="micro_peak",
        start_month=5,
        start_day=1,
        end_month=5,
        end_day=14,
        base_multiplier=2.5,
    ),
    SeasonalEventCreate(
        name="Father's Day",
        event_type="micro_peak",
        start_month=6,
        start_day=1,
        end_month=6,
        end_day=14,
        base_multiplier=2.0,
    ),
    SeasonalEventCreate(
        name="Prime Day",
        event_type="micro_peak",
        start_month=7,
        start_day=10,
        end_month=7,
        end_day=20,
        base_multiplier=3.0,
    ),
    SeasonalEventCreate(
        name="Spring Sales",
        event_type="micro_peak",
        start_month=3,
        start_day=1,
        end_month=4,
        end_day=30,
        base_multiplier=1.5,
    ),
    SeasonalEventCreate(
        name="Black Friday through Christmas",
        event_type="major_peak",
        start_month=11,
        start_day=15,
        end_month=12,
        end_day=24,
        base_multiplier=4.0,
    ),
)


def default_seasonal_events() -> list[SeasonalEvent]:
    """Unsaved copies of the default catalog.

    Used for seeding and as the fallback catalog when the event table is
    empty or unreachable.
    """
    return [SeasonalEvent(**payload.model_dump()) for payload in DEFAULT_EVENTS]
