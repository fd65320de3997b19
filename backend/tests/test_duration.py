"""Tests for the canonical leave day count."""

from __future__ import annotations

from datetime import date

from leave_engine.services.duration import count_leave_days


def test_single_day_counts_as_one() -> None:
    assert count_leave_days(date(2025, 3, 10), date(2025, 3, 10)) == 1


def test_range_is_inclusive_of_both_ends() -> None:
    """Monday through Wednesday = 3 days."""
    assert count_leave_days(date(2025, 3, 10), date(2025, 3, 12)) == 3


def test_weekends_are_counted() -> None:
    """Friday through Monday = 4 calendar days."""
    assert count_leave_days(date(2025, 3, 14), date(2025, 3, 17)) == 4


def test_range_across_month_boundary() -> None:
    assert count_leave_days(date(2025, 1, 30), date(2025, 2, 2)) == 4


def test_range_across_leap_day() -> None:
    assert count_leave_days(date(2024, 2, 28), date(2024, 3, 1)) == 3
