"""Test fixtures for new-items module."""

from datetime import date

import pytest

from app.core.config import ForecastConfig
from app.features.new_items.schemas import CandidateProduct, ProductProfile


@pytest.fixture
def config() -> ForecastConfig:
    """Default engine thresholds."""
    return ForecastConfig()


@pytest.fixture
def launch_date() -> date:
    """First sale of the new item."""
    return date(2024, 3, 1)


@pytest.fixture
def new_item(launch_date: date) -> ProductProfile:
    """Kitchen item at $20 from Acme via SUP-1."""
    return ProductProfile(
        sku="SKU-NEW",
        category="kitchen",
        price=20.0,
        brand="Acme",
        supplier_id="SUP-1",
        launch_date=launch_date,
    )


@pytest.fixture
def candidates() -> list[CandidateProduct]:
    """Existing SKUs scoring 0.9, 0.65, 0.6 (no velocity) and the item itself.

    SKU-A: category + price within 10% + brand.
    SKU-B: category + price within 35% (half credit) + supplier.
    SKU-C: price + brand + supplier but never sold.
    """
    return [
        CandidateProduct(
            sku="SKU-A",
            category="kitchen",
            price=22.0,
            brand="Acme",
            supplier_id="SUP-2",
            velocity_30d=5.0,
            velocity_90d=4.5,
            first_month_velocity=4.0,
        ),
        CandidateProduct(
            sku="SKU-B",
            category="kitchen",
            price=27.0,
            brand="Other",
            supplier_id="SUP-1",
            velocity_30d=20.0,
        ),
        CandidateProduct(
            sku="SKU-C",
            category="garden",
            price=20.0,
            brand="Acme",
            supplier_id="SUP-1",
        ),
        CandidateProduct(
            sku="SKU-NEW",
            category="kitchen",
            price=20.0,
            brand="Acme",
            supplier_id="SUP-1",
            velocity_30d=50.0,
        ),
    ]
