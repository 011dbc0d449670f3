"""Tests for event window membership and next-occurrence arithmetic."""

from datetime import date

import pytest

from app.features.seasonality.schemas import EventWindow, SeasonalEvent
from app.features.seasonality.windows import days_until_event, is_date_in_event


class TestIsDateInEvent:
    """Tests for is_date_in_event."""

    def test_multi_month_window_includes_both_ends(self, holiday_event: SeasonalEvent) -> None:
        """Nov 15 and Dec 24 are inside Nov 15 - Dec 24."""
        assert is_date_in_event(date(2024, 11, 15), holiday_event)
        assert is_date_in_event(date(2024, 12, 24), holiday_event)
        assert is_date_in_event(date(2024, 11, 30), holiday_event)

    def test_multi_month_window_excludes_outside(self, holiday_event: SeasonalEvent) -> None:
        """Jan 1, Nov 14 and Dec 25 are outside Nov 15 - Dec 24."""
        assert not is_date_in_event(date(2025, 1, 1), holiday_event)
        assert not is_date_in_event(date(2024, 11, 14), holiday_event)
        assert not is_date_in_event(date(2024, 12, 25), holiday_event)

    def test_wrapping_window(self, wrapping_event: SeasonalEvent) -> None:
        """Dec 20 - Jan 5 spans the new year."""
        assert is_date_in_event(date(2024, 12, 20), wrapping_event)
        assert is_date_in_event(date(2024, 12, 31), wrapping_event)
        assert is_date_in_event(date(2025, 1, 1), wrapping_event)
        assert is_date_in_event(date(2025, 1, 5), wrapping_event)
        assert not is_date_in_event(date(2025, 1, 6), wrapping_event)
        assert not is_date_in_event(date(2024, 12, 19), wrapping_event)
        assert not is_date_in_event(date(2024, 6, 15), wrapping_event)

    def test_wrapping_window_across_many_months(self) -> None:
        """Oct 1 - Feb 28 includes every month in between."""
        window = EventWindow(start_month=10, start_day=1, end_month=2, end_day=28)
        assert is_date_in_event(date(2024, 11, 11), window)
        assert is_date_in_event(date(2025, 1, 15), window)
        assert not is_date_in_event(date(2025, 3, 1), window)
        assert not is_date_in_event(date(2024, 9, 30), window)

    def test_single_month_window(self) -> None:
        """Feb 1 - Feb 14 only matches early February."""
        window = EventWindow(start_month=2, start_day=1, end_month=2, end_day=14)
        assert is_date_in_event(date(2024, 2, 14), window)
        assert not is_date_in_event(date(2024, 2, 15), window)
        assert not is_date_in_event(date(2024, 3, 5), window)

    def test_same_month_wrapping_window(self) -> None:
        """Mar 25 - Mar 5 covers everything except Mar 6-24."""
        window = EventWindow(start_month=3, start_day=25, end_month=3, end_day=5)
        assert is_date_in_event(date(2024, 3, 28), window)
        assert is_date_in_event(date(2024, 3, 2), window)
        assert is_date_in_event(date(2024, 8, 1), window)
        assert not is_date_in_event(date(2024, 3, 10), window)


class TestDaysUntilEvent:
    """Tests for days_until_event."""

    def test_upcoming_this_year(self, holiday_event: SeasonalEvent) -> None:
        """Event later this year counts days to its start."""
        assert days_until_event(holiday_event, date(2024, 11, 1)) == 14

    def test_passed_event_uses_next_year(self, holiday_event: SeasonalEvent) -> None:
        """After the window closes, next year's occurrence is used."""
        days = days_until_event(holiday_event, date(2024, 12, 26))
        assert days == (date(2025, 11, 15) - date(2024, 12, 26)).days
        assert days >= 0

    def test_in_progress_event_is_zero(self, holiday_event: SeasonalEvent) -> None:
        """Inside the window the event is due now."""
        assert days_until_event(holiday_event, date(2024, 12, 1)) == 0

    def test_wrapping_event_in_january(self, wrapping_event: SeasonalEvent) -> None:
        """Jan 3 is inside a Dec 20 - Jan 5 window."""
        assert days_until_event(wrapping_event, date(2025, 1, 3)) == 0

    def test_leap_day_start_in_non_leap_year(self) -> None:
        """A Feb 29 start falls back to Feb 28 in non-leap years."""
        window = EventWindow(start_month=2, start_day=29, end_month=3, end_day=3)
        assert days_until_event(window, date(2025, 2, 1)) == 27


class TestEventWindowValidation:
    """Tests for month/day validation."""

    def test_rejects_invalid_month(self) -> None:
        """Month 13 is rejected."""
        with pytest.raises(ValueError, match="start_month"):
            EventWindow(start_month=13, start_day=1, end_month=1, end_day=1)

    def test_rejects_invalid_day(self) -> None:
        """April 31 is rejected."""
        with pytest.raises(ValueError, match="end_day"):
            EventWindow(start_month=4, start_day=1, end_month=4, end_day=31)

    def test_wraps_year_property(self, wrapping_event: SeasonalEvent) -> None:
        """wraps_year reflects start after end."""
        assert wrapping_event.wraps_year is True
