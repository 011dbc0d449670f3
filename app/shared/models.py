"""Shared SQLAlchemy column helpers for the learning tables."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

# Marketplace SKUs and seller SKUs both fit
SKU_LENGTH = 100


def sku_column(*, unique: bool = False) -> Mapped[str]:
    """Indexed SKU column; unique for one-row-per-SKU tables."""
    return mapped_column(String(SKU_LENGTH), unique=unique, index=True)


class TimestampMixin:
    """created_at / updated_at maintained by the database.

    Upserts set updated_at explicitly; ON CONFLICT bypasses onupdate.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
