"""Accuracy API routes: weight learning, model comparison and reports."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.features.accuracy.schemas import (
    AccuracyReport,
    AccuracyReportRequest,
    CompareModelsRequest,
    CompareModelsResponse,
    OptimizeWeightsRequest,
    OptimizeWeightsResponse,
    TrackAccuracyRequest,
    TrackAccuracyResponse,
)
from app.features.accuracy.service import AccuracyService

logger = get_logger(__name__)

router = APIRouter(prefix="/accuracy", tags=["accuracy"])


@router.post(
    "/optimize",
    response_model=OptimizeWeightsResponse,
    summary="Run one weight-learning step for a SKU",
    description="""
Backtest each sub-model over rolling 30-day windows, derive inverse-MAPE
weights from this run alone, and compare them with the current weights on a
30-day holdout. Rerunning on the same history gives the same weights.

**Persistence:**
- Weights are stored when the SKU has none recorded or the new weights do no
  worse on the holdout
- If storage is unavailable the result is still returned with `persisted=false`

Histories shorter than 90 days are skipped with `skipped_reason`.
""",
)
async def optimize_weights(
    request: OptimizeWeightsRequest,
    db: AsyncSession = Depends(get_db),
) -> OptimizeWeightsResponse:
    """Run one weight-learning step."""
    logger.info(
        "accuracy.optimize_request_received", sku=request.sku, n_points=len(request.sales)
    )
    return await AccuracyService().optimize(db, request)


@router.post(
    "/compare",
    response_model=CompareModelsResponse,
    summary="Compare sub-models on a holdout",
)
async def compare_models(request: CompareModelsRequest) -> CompareModelsResponse:
    """Compare sub-model MAPE and bias on the last validation_days."""
    logger.info(
        "accuracy.compare_request_received",
        sku=request.sku,
        validation_days=request.validation_days,
    )
    return AccuracyService().compare(request)


@router.post(
    "/track",
    response_model=TrackAccuracyResponse,
    summary="Record forecast vs actual",
)
async def track_accuracy(
    request: TrackAccuracyRequest,
    db: AsyncSession = Depends(get_db),
) -> TrackAccuracyResponse:
    """Score and store predicted/actual pairs."""
    logger.info("accuracy.track_request_received", observations=len(request.observations))
    return await AccuracyService().track(db, request)


@router.post(
    "/report",
    response_model=AccuracyReport,
    summary="Accuracy report for a period",
    description="""
Summarize forecast accuracy between `period_start` and `period_end`.

When `records` is empty the stored records of the period are used, and the
stored records of the preceding period of equal length feed `improvement`.
""",
)
async def accuracy_report(
    request: AccuracyReportRequest,
    db: AsyncSession = Depends(get_db),
) -> AccuracyReport:
    """Build an accuracy report."""
    logger.info(
        "accuracy.report_request_received",
        period_start=request.period_start.isoformat(),
        period_end=request.period_end.isoformat(),
        records=len(request.records),
    )
    try:
        return await AccuracyService().report(db, request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
