"""Persistence boundary for ensemble weights and accuracy records.

Rows are converted to domain models on the way out. SQLAlchemy errors
propagate to the service, which decides whether to degrade or fail.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.accuracy.models import ForecastAccuracyRecord, ModelWeightsRecord
from app.features.accuracy.schemas import ForecastAccuracyEntry
from app.features.forecasting.schemas import ModelWeights


def record_to_weights(record: ModelWeightsRecord) -> ModelWeights:
    """Convert an ORM row to the domain model."""
    return ModelWeights(
        sku=record.sku,
        prophet=float(record.prophet),
        lstm=float(record.lstm),
        exponential_smoothing=float(record.exponential_smoothing),
        arima=float(record.arima),
        overall_mape=float(record.overall_mape) if record.overall_mape is not None else None,
        last_updated=record.last_updated,
    )


class ModelWeightsRepository:
    """Per-SKU weight reads and upserts."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, sku: str) -> ModelWeights | None:
        """Stored weights for a SKU, None if never learned."""
        result = await self.db.execute(
            select(ModelWeightsRecord).where(ModelWeightsRecord.sku == sku)
        )
        record = result.scalar_one_or_none()
        return record_to_weights(record) if record else None

    async def upsert(self, weights: ModelWeights) -> None:
        """Insert or replace the weights of a SKU."""
        values = {
            "sku": weights.sku,
            "prophet": weights.prophet,
            "lstm": weights.lstm,
            "exponential_smoothing": weights.exponential_smoothing,
            "arima": weights.arima,
            "overall_mape": weights.overall_mape,
        }
        insert_stmt = pg_insert(ModelWeightsRecord).values(**values)
        upsert_stmt = insert_stmt.on_conflict_do_update(
            index_elements=["sku"],
            set_={
                "prophet": insert_stmt.excluded.prophet,
                "lstm": insert_stmt.excluded.lstm,
                "exponential_smoothing": insert_stmt.excluded.exponential_smoothing,
                "arima": insert_stmt.excluded.arima,
                "overall_mape": insert_stmt.excluded.overall_mape,
                "last_updated": func.now(),
                "updated_at": func.now(),
            },
        )
        await self.db.execute(upsert_stmt)


class ForecastAccuracyRepository:
    """Accuracy record writes and period reads."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def upsert_many(self, entries: Sequence[ForecastAccuracyEntry]) -> int:
        """Insert records, replacing any with the same SKU, date and model.

        Returns:
            Number of rows written.
        """
        if not entries:
            return 0
        rows = [e.model_dump() for e in entries]
        insert_stmt = pg_insert(ForecastAccuracyRecord).values(rows)
        upsert_stmt = insert_stmt.on_conflict_do_update(
            index_elements=["sku", "forecast_date", "model"],
            set_={
                "predicted_units": insert_stmt.excluded.predicted_units,
                "actual_units": insert_stmt.excluded.actual_units,
                "percentage_error": insert_stmt.excluded.percentage_error,
                "within_tolerance": insert_stmt.excluded.within_tolerance,
                "updated_at": func.now(),
            },
        ).returning(ForecastAccuracyRecord.id)
        result = await self.db.execute(upsert_stmt)
        return len(result.fetchall())

    async def list_between(
        self, start: date, end: date, sku: str | None = None
    ) -> list[ForecastAccuracyEntry]:
        """Records with forecast_date in [start, end]."""
        stmt = select(ForecastAccuracyRecord).where(
            ForecastAccuracyRecord.forecast_date >= start,
            ForecastAccuracyRecord.forecast_date <= end,
        )
        if sku is not None:
            stmt = stmt.where(ForecastAccuracyRecord.sku == sku)
        stmt = stmt.order_by(ForecastAccuracyRecord.forecast_date, ForecastAccuracyRecord.sku)
        result = await self.db.execute(stmt)
        return [ForecastAccuracyEntry.model_validate(r) for r in result.scalars().all()]
