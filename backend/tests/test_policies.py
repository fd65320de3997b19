"""Unit tests for per-category leave rules."""

from __future__ import annotations

from leave_engine.config import Settings
from leave_engine.models.enums import LeaveType, TrainerCategory
from leave_engine.services.policy import get_category_policy


def test_permanent_policy() -> None:
    policy = get_category_policy(TrainerCategory.PERMANENT)

    assert policy.allowed_leave_types == (LeaveType.SICK, LeaveType.CASUAL, LeaveType.PAID)
    assert policy.initial == {LeaveType.SICK: 0, LeaveType.CASUAL: 0, LeaveType.PAID: None}
    assert policy.accrues is True
    assert policy.rolls_over is True
    assert policy.finite_leave_types() == [LeaveType.SICK, LeaveType.CASUAL]


def test_contracted_policy_is_paid_only() -> None:
    policy = get_category_policy(TrainerCategory.CONTRACTED)

    assert policy.allowed_leave_types == (LeaveType.PAID,)
    assert policy.allows(LeaveType.PAID)
    assert not policy.allows(LeaveType.SICK)
    assert policy.accrues is False
    assert policy.rolls_over is False
    assert policy.finite_leave_types() == []


def test_monthly_increment_comes_from_settings() -> None:
    settings = Settings(monthly_sick_increment=2, monthly_casual_increment=0)

    policy = get_category_policy(TrainerCategory.PERMANENT, settings)

    assert policy.monthly_increment == {LeaveType.SICK: 2, LeaveType.CASUAL: 0}
