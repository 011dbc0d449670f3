"""Persistence boundary for seasonal events.

Rows are converted to SeasonalEvent on the way out; the engine never sees
ORM objects or serialized multipliers. SQLAlchemy errors propagate to the
service, which decides whether to degrade or fail.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.seasonality.models import SeasonalEventRecord
from app.features.seasonality.schemas import SeasonalEvent, SeasonalEventCreate


def record_to_event(record: SeasonalEventRecord) -> SeasonalEvent:
    """Convert an ORM row to the domain model."""
    return SeasonalEvent(
        id=record.id,
        name=record.name,
        event_type=record.event_type,  # type: ignore[arg-type]
        start_month=record.start_month,
        start_day=record.start_day,
        end_month=record.end_month,
        end_day=record.end_day,
        base_multiplier=float(record.base_multiplier),
        learned_multiplier=(
            float(record.learned_multiplier) if record.learned_multiplier is not None else None
        ),
        sku_multipliers={sku: float(m) for sku, m in (record.sku_multipliers or {}).items()},
        is_active=record.is_active,
    )


class SeasonalEventRepository:
    """Reads and per-row upserts of seasonal events."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_events(self, active_only: bool = True) -> list[SeasonalEvent]:
        """List events ordered by window start."""
        stmt = select(SeasonalEventRecord)
        if active_only:
            stmt = stmt.where(SeasonalEventRecord.is_active.is_(True))
        stmt = stmt.order_by(SeasonalEventRecord.start_month, SeasonalEventRecord.start_day)
        result = await self.db.execute(stmt)
        return [record_to_event(r) for r in result.scalars().all()]

    async def _get_record(self, event_id: int) -> SeasonalEventRecord | None:
        result = await self.db.execute(
            select(SeasonalEventRecord).where(SeasonalEventRecord.id == event_id)
        )
        return result.scalar_one_or_none()

    async def _get_record_by_name(self, name: str) -> SeasonalEventRecord | None:
        result = await self.db.execute(
            select(SeasonalEventRecord).where(SeasonalEventRecord.name == name)
        )
        return result.scalar_one_or_none()

    async def get(self, event_id: int) -> SeasonalEvent | None:
        """Get an event by id."""
        record = await self._get_record(event_id)
        return record_to_event(record) if record else None

    async def exists_by_name(self, name: str) -> bool:
        """Check whether an event name is taken."""
        return await self._get_record_by_name(name) is not None

    async def create(self, event: SeasonalEvent) -> SeasonalEvent:
        """Insert a new event."""
        record = SeasonalEventRecord(
            name=event.name,
            event_type=event.event_type,
            start_month=event.start_month,
            start_day=event.start_day,
            end_month=event.end_month,
            end_day=event.end_day,
            base_multiplier=event.base_multiplier,
            learned_multiplier=event.learned_multiplier,
            sku_multipliers=dict(event.sku_multipliers),
            is_active=event.is_active,
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record_to_event(record)

    async def save_learned_state(self, event: SeasonalEvent) -> SeasonalEvent | None:
        """Write learned and per-SKU multipliers of an existing event.

        Only the cross-run learned state is written; window and base values
        are left untouched.

        Returns:
            Updated event, or None if the id does not exist.
        """
        if event.id is None:
            return None
        record = await self._get_record(event.id)
        if record is None:
            return None
        record.learned_multiplier = event.learned_multiplier
        # Reassign so the JSONB change is tracked
        record.sku_multipliers = dict(event.sku_multipliers)
        await self.db.flush()
        await self.db.refresh(record)
        return record_to_event(record)

    async def set_active(self, event_id: int, is_active: bool) -> SeasonalEvent | None:
        """Activate or deactivate an event."""
        record = await self._get_record(event_id)
        if record is None:
            return None
        record.is_active = is_active
        await self.db.flush()
        await self.db.refresh(record)
        return record_to_event(record)

    async def upsert_by_name(self, payload: SeasonalEventCreate) -> tuple[SeasonalEvent, bool]:
        """Insert or update an event's window and base multiplier by name.

        Learned multipliers of an existing event are preserved.

        Returns:
            Tuple of (event, created).
        """
        record = await self._get_record_by_name(payload.name)
        if record is None:
            event = await self.create(SeasonalEvent(**payload.model_dump()))
            return event, True

        record.event_type = payload.event_type
        record.start_month = payload.start_month
        record.start_day = payload.start_day
        record.end_month = payload.end_month
        record.end_day = payload.end_day
        record.base_multiplier = payload.base_multiplier
        await self.db.flush()
        await self.db.refresh(record)
        return record_to_event(record), False
