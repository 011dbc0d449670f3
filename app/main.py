"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import dispose_engine
from app.core.exceptions import register_exception_handlers
from app.core.health import router as health_router
from app.core.logging import configure_logging, get_logger
from app.core.middleware import RequestIdMiddleware
from app.features.accuracy.routes import router as accuracy_router
from app.features.alerts.routes import router as alerts_router
from app.features.anomalies.routes import router as anomalies_router
from app.features.deals.routes import router as deals_router
from app.features.forecasting.routes import router as forecasting_router
from app.features.lead_time.routes import router as lead_time_router
from app.features.new_items.routes import router as new_items_router
from app.features.safety_stock.routes import router as safety_stock_router
from app.features.seasonality.routes import router as seasonality_router
from app.features.spikes.routes import router as spikes_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Args:
        _app: FastAPI application instance (unused, required by lifespan protocol).

    Yields:
        None after startup, disposes the database engine on shutdown.
    """
    settings = get_settings()

    # Startup
    configure_logging()
    logger.info(
        "app.startup_started",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
    )

    yield

    # Shutdown
    await dispose_engine()
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Demand forecasting and replenishment planning for Amazon FBA sellers: "
            "ensemble forecasts, seasonality, safety stock and purchasing alerts"
        ),
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - first added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"]
        if settings.is_development
        else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    # Exception handlers
    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(seasonality_router)
    app.include_router(forecasting_router)
    app.include_router(accuracy_router)
    app.include_router(spikes_router)
    app.include_router(deals_router)
    app.include_router(lead_time_router)
    app.include_router(safety_stock_router)
    app.include_router(new_items_router)
    app.include_router(anomalies_router)
    app.include_router(alerts_router)

    return app


app = create_app()
