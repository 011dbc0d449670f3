"""Seasonality service: event catalog access plus detection and learning.

Event reads degrade to the default catalog when the table is missing,
empty or unreachable, so forecasts always run with base multipliers.
"""

from __future__ import annotations

import time
from datetime import date

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import rollback_quietly
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import sku_context
from app.features.seasonality.defaults import DEFAULT_EVENTS, default_seasonal_events
from app.features.seasonality.detector import detect_seasonality
from app.features.seasonality.learner import (
    apply_learned_multiplier,
    create_seasonal_event,
    detect_new_seasonal_patterns,
    learn_seasonal_multipliers,
    update_sku_event_multiplier,
)
from app.features.seasonality.repository import SeasonalEventRepository
from app.features.seasonality.schemas import (
    DetectedPattern,
    DetectedSeasonality,
    LearnResponse,
    PatternDetectRequest,
    SalesHistoryRequest,
    SeasonalEvent,
    SeasonalEventCreate,
    SeedResponse,
    SkuMultiplierUpdate,
)
from app.shared.utils import fill_missing_days

logger = structlog.get_logger()


async def load_events_or_defaults(db: AsyncSession | None) -> tuple[list[SeasonalEvent], bool]:
    """Load active events, falling back to the default catalog.

    Args:
        db: Database session, or None to skip persistence entirely.

    Returns:
        Tuple of (events, from_database).
    """
    if db is None:
        return default_seasonal_events(), False
    try:
        events = await SeasonalEventRepository(db).list_events(active_only=True)
    except SQLAlchemyError as e:
        logger.warning(
            "persistence.unavailable",
            table="seasonal_event",
            error=str(e),
            error_type=type(e).__name__,
        )
        await rollback_quietly(db)
        return default_seasonal_events(), False
    if not events:
        logger.info("seasonality.catalog_empty_using_defaults")
        return default_seasonal_events(), False
    return events, True


class SeasonalityService:
    """Orchestrates seasonality detection, learning and the event catalog."""

    def __init__(self) -> None:
        """Initialize the seasonality service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def detect(self, db: AsyncSession | None, request: SalesHistoryRequest) -> DetectedSeasonality:
        """Detect yearly/weekly patterns and upcoming events for a SKU."""
        events, _ = await load_events_or_defaults(db)
        with sku_context(request.sku):
            return detect_seasonality(
                sku=request.sku,
                sales=fill_missing_days(request.sales),
                events=events,
                config=self.config,
                as_of=request.as_of or date.today(),
            )

    async def learn(
        self, db: AsyncSession, request: SalesHistoryRequest, per_sku: bool = True
    ) -> LearnResponse:
        """Learn event multipliers from history and persist them.

        Args:
            db: Database session.
            request: SKU and its sales history.
            per_sku: Store results as SKU overrides rather than global values.

        Returns:
            Learned multipliers and whether they were persisted.
        """
        start_time = time.perf_counter()
        events, from_db = await load_events_or_defaults(db)
        learn_sku = request.sku if per_sku else None

        with sku_context(request.sku):
            learned = learn_seasonal_multipliers(
                sku=learn_sku,
                sales=fill_missing_days(request.sales),
                events=events,
                config=self.config,
            )

            persisted = False
            if learned and from_db:
                by_id = {e.id: e for e in events}
                repo = SeasonalEventRepository(db)
                try:
                    for item in learned:
                        event = by_id.get(item.event_id)
                        if event is None:
                            continue
                        await repo.save_learned_state(apply_learned_multiplier(event, item))
                    persisted = True
                except SQLAlchemyError as e:
                    logger.warning(
                        "persistence.write_failed",
                        table="seasonal_event",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    await rollback_quietly(db)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "seasonality.learn_run_completed",
            sku=request.sku,
            learned=len(learned),
            persisted=persisted,
            duration_ms=round(duration_ms, 2),
        )
        return LearnResponse(
            sku=learn_sku,
            learned=learned,
            persisted=persisted,
            duration_ms=duration_ms,
        )

    def detect_patterns(self, request: PatternDetectRequest) -> list[DetectedPattern]:
        """Mine undeclared recurring spikes (advisory)."""
        return detect_new_seasonal_patterns(
            fill_missing_days(request.sales),
            self.config,
            min_spike_multiplier=request.min_spike_multiplier,
            min_recurrence=request.min_recurrence,
        )

    async def list_events(self, db: AsyncSession, active_only: bool = True) -> list[SeasonalEvent]:
        """List catalog events straight from the database."""
        return await SeasonalEventRepository(db).list_events(active_only=active_only)

    async def create_event(self, db: AsyncSession, payload: SeasonalEventCreate) -> SeasonalEvent:
        """Create a new event.

        Raises:
            ConflictError: If an event with the same name exists.
        """
        repo = SeasonalEventRepository(db)
        if await repo.exists_by_name(payload.name):
            raise ConflictError(
                message=f"Seasonal event '{payload.name}' already exists",
                details={"name": payload.name},
            )
        event = await repo.create(create_seasonal_event(payload))
        logger.info("seasonality.event_created", event_id=event.id, name=event.name)
        return event

    async def set_sku_multiplier(
        self, db: AsyncSession, event_id: int, update: SkuMultiplierUpdate
    ) -> SeasonalEvent:
        """Set a per-SKU multiplier override on an event.

        Raises:
            NotFoundError: If the event does not exist.
        """
        repo = SeasonalEventRepository(db)
        event = await repo.get(event_id)
        if event is None:
            raise NotFoundError(message=f"Seasonal event {event_id} not found")
        saved = await repo.save_learned_state(
            update_sku_event_multiplier(event, update.sku, update.multiplier)
        )
        logger.info(
            "seasonality.sku_multiplier_updated",
            event_id=event_id,
            sku=update.sku,
            multiplier=update.multiplier,
        )
        return saved or event

    async def deactivate_event(self, db: AsyncSession, event_id: int) -> SeasonalEvent:
        """Deactivate an event (events are never deleted).

        Raises:
            NotFoundError: If the event does not exist.
        """
        event = await SeasonalEventRepository(db).set_active(event_id, False)
        if event is None:
            raise NotFoundError(message=f"Seasonal event {event_id} not found")
        logger.info("seasonality.event_deactivated", event_id=event_id, name=event.name)
        return event

    async def seed_defaults(self, db: AsyncSession) -> SeedResponse:
        """Upsert the default catalog by name."""
        repo = SeasonalEventRepository(db)
        created = updated = 0
        events: list[SeasonalEvent] = []
        for payload in DEFAULT_EVENTS:
            event, was_created = await repo.upsert_by_name(payload)
            events.append(event)
            if was_created:
                created += 1
            else:
                updated += 1
        logger.info("seasonality.defaults_seeded", created=created, updated=updated)
        return SeedResponse(created=created, updated=updated, events=events)
