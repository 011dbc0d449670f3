"""Tests for alert suppression windows."""

from datetime import UTC, date, datetime

from app.features.alerts.schemas import RaisedAlert
from app.features.alerts.service import suppression_keys

NOW = datetime(2024, 6, 20, 12, 0, tzinfo=UTC)


class TestSuppressionKeys:
    """Explicit keys plus alerts raised within the window."""

    def test_window(self) -> None:
        """Only alerts raised in the last 24 hours are suppressed."""
        raised = [
            RaisedAlert(
                key="stockout_imminent-A", raised_at=datetime(2024, 6, 20, 1, 0, tzinfo=UTC)
            ),
            RaisedAlert(
                key="stockout_imminent-B", raised_at=datetime(2024, 6, 19, 11, 0, tzinfo=UTC)
            ),
        ]

        keys = suppression_keys(["seasonal_prep-global"], raised, date(2024, 6, 20), 24, now=NOW)

        assert keys == {"seasonal_prep-global", "stockout_imminent-A"}

    def test_naive_timestamps_are_utc(self) -> None:
        """Naive raised_at values are compared as UTC."""
        raised = [RaisedAlert(key="spike_detected-A", raised_at=datetime(2024, 6, 20, 11, 0))]

        assert suppression_keys([], raised, date(2024, 6, 20), 24, now=NOW) == {"spike_detected-A"}

    def test_past_as_of_ends_the_window(self) -> None:
        """For a past as_of the window ends with that day."""
        raised = [
            RaisedAlert(key="deal_inventory-A", raised_at=datetime(2024, 6, 10, 9, 0, tzinfo=UTC)),
            RaisedAlert(key="deal_inventory-B", raised_at=datetime(2024, 6, 20, 9, 0, tzinfo=UTC)),
        ]

        keys = suppression_keys([], raised, date(2024, 6, 10), 24, now=NOW)

        assert keys == {"deal_inventory-A"}
