"""Year-agnostic event window arithmetic."""

from __future__ import annotations

import calendar
from datetime import date

from app.features.seasonality.schemas import EventWindow


def _on_or_before_month_end(year: int, month: int, day: int) -> date:
    """Build a date, moving Feb 29 to Feb 28 in non-leap years."""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def is_date_in_event(d: date, window: EventWindow) -> bool:
    """Check whether a date falls inside a recurring window.

    Handles three shapes: single-month windows, windows spanning several
    months within a year, and windows that wrap past Dec 31.

    Args:
        d: Date to test.
        window: Event window (inclusive on both ends).

    Returns:
        True if the date is inside the window.
    """
    month, day = d.month, d.day
    sm, sd, em, ed = window.start_month, window.start_day, window.end_month, window.end_day

    if sm == em and sd <= ed:
        return month == sm and sd <= day <= ed

    if sm < em:
        return (
            (month == sm and day >= sd)
            or (month == em and day <= ed)
            or sm < month < em
        )

    # Wraps the year boundary
    return (
        (month == sm and day >= sd)
        or (month == em and day <= ed)
        or month > sm
        or month < em
        or (sm == em and month != sm)
    )


def next_event_start(window: EventWindow, as_of: date) -> date:
    """Start date of the next occurrence on or after ``as_of``."""
    start = _on_or_before_month_end(as_of.year, window.start_month, window.start_day)
    if start < as_of:
        start = _on_or_before_month_end(as_of.year + 1, window.start_month, window.start_day)
    return start


def days_until_event(window: EventWindow, as_of: date) -> int:
    """Days until the event window next begins.

    Returns 0 while the window is in progress. Once this year's window has
    passed the next year's occurrence is used, so the result is never negative.
    """
    if is_date_in_event(as_of, window):
        return 0
    return (next_event_start(window, as_of) - as_of).days
