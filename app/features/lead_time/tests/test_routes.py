"""Tests for lead-time routes."""

from httpx import AsyncClient


def _orders(lead_times: list[int]) -> list[dict[str, object]]:
    return [
        {
            "ordered_at": f"2024-{i + 1:02d}-01",
            "actual_delivery_at": f"2024-{i + 1:02d}-{1 + lead_time:02d}",
        }
        for i, lead_time in enumerate(lead_times)
    ]


class TestLeadTimeRoutes:
    """POST /lead-time/analyze and /lead-time/scorecard."""

    async def test_analyze(self, client: AsyncClient) -> None:
        """Analysis returns planning lead times and alerts."""
        response = await client.post(
            "/lead-time/analyze",
            json={
                "supplier_id": "SUP-1",
                "supplier_name": "Acme",
                "stated_lead_time": 20,
                "purchase_orders": _orders([20, 20, 20]),
                "as_of": "2024-12-31",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["data"]["avg_actual_lead_time"] == 20.0
        assert data["effective_lead_time"] == 20
        assert data["total_lead_time"] == 33
        assert data["alerts"] == []

    async def test_scorecard(self, client: AsyncClient) -> None:
        """A supplier without enough history grades F at 0.5 reliability."""
        response = await client.post(
            "/lead-time/scorecard",
            json={"supplier_id": "SUP-1", "supplier_name": "Acme", "as_of": "2024-12-31"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["grade"] == "F"
        assert data["reliability_score"] == 50

    async def test_delivery_before_order_rejected(self, client: AsyncClient) -> None:
        """Delivery dates before the order date are a validation error."""
        response = await client.post(
            "/lead-time/analyze",
            json={
                "supplier_id": "SUP-1",
                "supplier_name": "Acme",
                "purchase_orders": [
                    {"ordered_at": "2024-02-01", "actual_delivery_at": "2024-01-15"}
                ],
            },
        )

        assert response.status_code == 422
