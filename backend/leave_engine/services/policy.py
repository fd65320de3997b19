"""Leave rules per trainer category."""

from __future__ import annotations

from dataclasses import dataclass, field

from leave_engine.config import Settings, get_settings
from leave_engine.models.enums import LeaveType, TrainerCategory


@dataclass(frozen=True)
class CategoryPolicy:
    """Leave entitlements for one trainer category.

    ``initial`` maps each allowed type to its opening balance; ``None`` means
    the balance is unlimited.
    """

    category: TrainerCategory
    allowed_leave_types: tuple[LeaveType, ...]
    initial: dict[LeaveType, int | None]
    monthly_increment: dict[LeaveType, int] = field(default_factory=dict)
    accrues: bool = False
    rolls_over: bool = False

    def allows(self, leave_type: LeaveType) -> bool:
        return leave_type in self.allowed_leave_types

    def finite_leave_types(self) -> list[LeaveType]:
        return [t for t in self.allowed_leave_types if self.initial.get(t) is not None]


def get_category_policy(category: TrainerCategory, settings: Settings | None = None) -> CategoryPolicy:
    """Return the leave rules for ``category``."""
    settings = settings or get_settings()

    if category == TrainerCategory.PERMANENT:
        return CategoryPolicy(
            category=category,
            allowed_leave_types=(LeaveType.SICK, LeaveType.CASUAL, LeaveType.PAID),
            initial={LeaveType.SICK: 0, LeaveType.CASUAL: 0, LeaveType.PAID: None},
            monthly_increment={
                LeaveType.SICK: settings.monthly_sick_increment,
                LeaveType.CASUAL: settings.monthly_casual_increment,
            },
            accrues=True,
            rolls_over=True,
        )

    # CONTRACTED: paid leave only, never accrues or rolls over.
    return CategoryPolicy(
        category=category,
        allowed_leave_types=(LeaveType.PAID,),
        initial={LeaveType.PAID: None},
    )
