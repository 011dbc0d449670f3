"""Tests for anomaly routes."""

from datetime import date, timedelta

from httpx import AsyncClient


class TestAnomalyRoutes:
    """POST /anomalies/detect."""

    async def test_detect_without_stored_accuracy(self, client_without_db: AsyncClient) -> None:
        """Unavailable accuracy storage still yields inventory anomalies."""
        as_of = date(2024, 6, 30)
        sales = [
            {"date": (as_of - timedelta(days=i)).isoformat(), "units": 5.0} for i in range(30)
        ]

        response = await client_without_db.post(
            "/anomalies/detect",
            json={
                "snapshots": [{"sku": "SKU-1", "sales": sales, "price": 10.0}],
                "as_of": as_of.isoformat(),
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["anomalies"]) == 1
        assert data["anomalies"][0]["event_type"] == "stockout"
        assert data["anomalies"][0]["unit_impact"] == 35
        assert data["summary"]["by_type"]["stockout"] == 1

    async def test_rejects_unknown_fields(self, client_without_db: AsyncClient) -> None:
        """Snapshots forbid unknown fields."""
        response = await client_without_db.post(
            "/anomalies/detect",
            json={"snapshots": [{"sku": "SKU-1", "velocity": 3}]},
        )

        assert response.status_code == 422
