"""New-item service: resolves the event catalog and runs the matcher."""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import sku_context
from app.features.new_items.matcher import forecast_new_item
from app.features.new_items.schemas import NewItemForecastRequest, NewItemForecastResponse
from app.features.seasonality.service import load_events_or_defaults

logger = structlog.get_logger()


class NewItemService:
    """Forecasts recently launched SKUs from analogs."""

    def __init__(self) -> None:
        """Initialize the new-item service."""
        self.settings = get_settings()
        self.config = self.settings.forecast

    async def forecast(
        self, db: AsyncSession | None, request: NewItemForecastRequest
    ) -> NewItemForecastResponse:
        """Forecast a new SKU, applying today's seasonal multiplier."""
        as_of = request.as_of or date.today()
        with sku_context(request.item.sku):
            if request.events is not None:
                events, source = request.events, "request"
            else:
                events, from_db = await load_events_or_defaults(db)
                source = "database" if from_db else "defaults"

            forecast, analog = forecast_new_item(
                item=request.item,
                candidates=request.candidates,
                config=self.config,
                as_of=as_of,
                actual_velocity=request.actual_velocity,
                events=events,
            )
        return NewItemForecastResponse(
            forecast=forecast,
            analog=analog,
            events_source=source,  # type: ignore[arg-type]
        )
