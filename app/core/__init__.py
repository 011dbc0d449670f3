"""Core infrastructure: config, database, logging, middleware, exceptions."""

from app.core.config import ForecastConfig, Settings, get_forecast_config, get_settings
from app.core.database import Base, get_db
from app.core.logging import get_logger, request_id_ctx, sku_context

__all__ = [
    "Base",
    "ForecastConfig",
    "Settings",
    "get_db",
    "get_forecast_config",
    "get_logger",
    "get_settings",
    "request_id_ctx",
    "sku_context",
]
