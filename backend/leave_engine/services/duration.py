"""Canonical leave day-count calculation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date


def count_leave_days(from_date: date, to_date: date) -> int:
    """Inclusive calendar-day count between from_date and to_date.

    This is the only place the number of days of a request is computed.
    A single-day request (from_date == to_date) counts as 1.
    """
    return (to_date - from_date).days + 1
