"""Shared Pydantic schemas for the forecasting engine inputs."""

from datetime import date as date_type
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

UrgencyLevel = Literal["critical", "high", "medium", "low", "ok"]
Severity = Literal["critical", "high", "medium", "low"]

# Sort keys: most urgent first
URGENCY_ORDER: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3, "ok": 4}
SEVERITY_ORDER: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}


class SalesDataPoint(BaseModel):
    """One day (or aggregated period) of sales for a SKU."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: date_type = Field(..., description="Sale date")
    units: float = Field(..., ge=0, description="Units sold")
    revenue: float | None = Field(None, ge=0, description="Revenue for the period")
    channel: str | None = Field(None, max_length=50, description="Sales channel")


class InventoryPosition(BaseModel):
    """Current stock position of a SKU across locations.

    When ``total`` is omitted it is derived as fba_available + fba_inbound +
    warehouse_available. Reserved FBA units are not sellable and are excluded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    fba_available: float = Field(default=0, ge=0)
    fba_inbound: float = Field(default=0, ge=0)
    fba_reserved: float = Field(default=0, ge=0)
    warehouse_available: float = Field(default=0, ge=0)
    total: float | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def derive_total(cls, data: Any) -> Any:  # noqa: ANN401
        """Fill in total from the location quantities."""
        if isinstance(data, dict) and data.get("total") is None:
            data = dict(data)
            data["total"] = (
                float(data.get("fba_available", 0) or 0)
                + float(data.get("fba_inbound", 0) or 0)
                + float(data.get("warehouse_available", 0) or 0)
            )
        return data

    @property
    def total_units(self) -> float:
        """Total sellable units (never None after validation)."""
        return float(self.total or 0.0)

    @property
    def fba_units(self) -> float:
        """Units available or already inbound to FBA."""
        return self.fba_available + self.fba_inbound
