"""Accuracy service: weight learning steps, model comparison and reports.

Weight reads degrade to "no learned weights" when the table is missing or
unreachable; writes report ``persisted=False`` instead of failing.
"""

from __future__ import annotations

import time
from datetime import timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import rollback_quietly
from app.core.logging import sku_context
from app.features.accuracy.optimizer import compare_model_performance, optimize_model_weights
from app.features.accuracy.repository import ForecastAccuracyRepository, ModelWeightsRepository
from app.features.accuracy.schemas import (
    AccuracyReport,
    AccuracyReportRequest,
    CompareModelsRequest,
    CompareModelsResponse,
    ForecastAccuracyEntry,
    OptimizeWeightsRequest,
    OptimizeWeightsResponse,
    TrackAccuracyRequest,
    TrackAccuracyResponse,
)
from app.features.accuracy.tracker import generate_accuracy_report, track_forecast_accuracy
from app.features.forecasting.schemas import ModelWeights

logger = structlog.get_logger()


async def load_learned_weights(db: AsyncSession | None, sku: str) -> ModelWeights | None:
    """Stored weights for a SKU, or None when absent or unreachable."""
    if db is None:
        return None
    try:
        return await ModelWeightsRepository(db).get(sku)
    except SQLAlchemyError as e:
        logger.warning(
            "persistence.unavailable",
            table="model_weights",
            sku=sku,
            error=str(e),
            error_type=type(e).__name__,
        )
        await rollback_quietly(db)
        return None


class AccuracyService:
    """Orchestrates backtests, weight persistence and accuracy reporting."""

    def __init__(self) -> None:
        """Initialize the accuracy service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def optimize(
        self, db: AsyncSession | None, request: OptimizeWeightsRequest
    ) -> OptimizeWeightsResponse:
        """Run one weight-learning step and store the weights unless they do worse.

        Args:
            db: Database session, or None to skip persistence.
            request: SKU, history and optional starting weights.

        Returns:
            The optimization result, or the reason it was skipped.
        """
        start_time = time.perf_counter()
        with sku_context(request.sku):
            current = request.current_weights or await load_learned_weights(db, request.sku)
            result = optimize_model_weights(request.sku, request.sales, current, self.config)

            if result is not None and result.should_save and db is not None:
                try:
                    await ModelWeightsRepository(db).upsert(result.weights)
                    result = result.model_copy(update={"persisted": True})
                except SQLAlchemyError as e:
                    logger.warning(
                        "persistence.write_failed",
                        table="model_weights",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    await rollback_quietly(db)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "accuracy.optimize_run_completed",
            sku=request.sku,
            skipped=result is None,
            persisted=bool(result and result.persisted),
            duration_ms=round(duration_ms, 2),
        )
        return OptimizeWeightsResponse(
            sku=request.sku,
            result=result,
            skipped_reason="insufficient_history" if result is None else None,
            duration_ms=duration_ms,
        )

    def compare(self, request: CompareModelsRequest) -> CompareModelsResponse:
        """Holdout comparison of the four models."""
        with sku_context(request.sku):
            models = compare_model_performance(
                request.sales, self.config, validation_days=request.validation_days
            )
        scored = [m for m in models if m.sample_size > 0]
        best = min(scored, key=lambda m: m.mape).model if scored else None
        return CompareModelsResponse(
            sku=request.sku,
            validation_days=request.validation_days,
            models=models,
            best_model=best,
        )

    async def track(
        self, db: AsyncSession | None, request: TrackAccuracyRequest
    ) -> TrackAccuracyResponse:
        """Score predicted/actual pairs and store them."""
        tolerance = self.config.accuracy.hit_tolerance
        records = [
            track_forecast_accuracy(
                sku=o.sku,
                forecast_date=o.forecast_date,
                predicted=o.predicted_units,
                actual=o.actual_units,
                model=o.model,
                tolerance=tolerance,
            )
            for o in request.observations
        ]

        persisted = False
        if db is not None:
            try:
                await ForecastAccuracyRepository(db).upsert_many(records)
                persisted = True
            except SQLAlchemyError as e:
                logger.warning(
                    "persistence.write_failed",
                    table="forecast_accuracy",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                await rollback_quietly(db)

        logger.info("accuracy.tracked", records=len(records), persisted=persisted)
        return TrackAccuracyResponse(records=records, persisted=persisted)

    async def _stored_records(
        self, db: AsyncSession | None, request: AccuracyReportRequest
    ) -> tuple[list[ForecastAccuracyEntry], list[ForecastAccuracyEntry] | None]:
        """Current and previous-period records from the database."""
        if db is None:
            return [], None
        period = request.period_end - request.period_start
        previous_end = request.period_start - timedelta(days=1)
        repo = ForecastAccuracyRepository(db)
        try:
            current = await repo.list_between(request.period_start, request.period_end)
            previous = await repo.list_between(previous_end - period, previous_end)
        except SQLAlchemyError as e:
            logger.warning(
                "persistence.unavailable",
                table="forecast_accuracy",
                error=str(e),
                error_type=type(e).__name__,
            )
            await rollback_quietly(db)
            return [], None
        return current, previous or None

    async def report(
        self, db: AsyncSession | None, request: AccuracyReportRequest
    ) -> AccuracyReport:
        """Accuracy report from submitted records, or stored ones when none are given."""
        records = list(request.records)
        previous = request.previous_records
        if not records:
            records, stored_previous = await self._stored_records(db, request)
            if previous is None:
                previous = stored_previous

        return generate_accuracy_report(
            records,
            period_start=request.period_start,
            period_end=request.period_end,
            previous_records=previous,
            categories=request.categories,
        )
