"""Doctor availability: weekly working patterns and holiday overrides."""

import logging
from dataclasses import dataclass
from enum import Enum

from clinic_booking.date_utils import weekday_index

logger = logging.getLogger(__name__)

OFF_DUTY_REASON = "Off Duty (Weekly Schedule)"
DOCTOR_NOT_FOUND_REASON = "Doctor not found"

# 0=Sunday .. 6=Saturday
ALL_DAYS = frozenset(range(7))


class WeeklyPattern(Enum):
    """Weekly working-day patterns a doctor can be scheduled on."""
    MON_FRI = "mon-fri"
    MON_SAT = "mon-sat"
    TUE_SAT = "tue-sat"
    MON_SUN = "mon-sun"
    # Labels we don't recognize resolve here and are treated as always working
    UNRESTRICTED = "unrestricted"

    @property
    def working_days(self) -> frozenset[int]:
        return WORKING_DAYS[self]

    def works_on(self, weekday: int) -> bool:
        return weekday in self.working_days

    @classmethod
    def from_label(cls, label: str | None) -> "WeeklyPattern":
        """Resolve a free-text label such as "Mon-Fri" or "Mon-Fri (rotating)".

        Matching is a case-insensitive substring test, checked in a fixed
        order so "Mon-Fri" wins over a label that also mentions "Mon-Sat".
        """
        text = (label or "").lower()
        for pattern in (cls.MON_FRI, cls.MON_SAT, cls.TUE_SAT, cls.MON_SUN):
            if pattern.value in text:
                return pattern
        return cls.UNRESTRICTED


WORKING_DAYS = {
    WeeklyPattern.MON_FRI: frozenset({1, 2, 3, 4, 5}),
    WeeklyPattern.MON_SAT: frozenset({1, 2, 3, 4, 5, 6}),
    WeeklyPattern.TUE_SAT: frozenset({2, 3, 4, 5, 6}),
    WeeklyPattern.MON_SUN: ALL_DAYS,
    WeeklyPattern.UNRESTRICTED: ALL_DAYS,
}


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        if self.available:
            return {"available": True}
        return {"available": False, "reason": self.reason}


def check_availability(
    pattern: WeeklyPattern | str,
    date: str,
    holiday_reason: str | None = None,
    is_holiday: bool = False,
) -> Availability:
    """Decide whether a doctor works on a date.

    A holiday always wins over the weekly pattern. Pass ``is_holiday`` when a
    holiday row exists but carries no reason.
    """
    if is_holiday or holiday_reason is not None:
        return Availability(False, holiday_reason or "Holiday")

    if isinstance(pattern, str):
        pattern = WeeklyPattern.from_label(pattern)

    if not pattern.works_on(weekday_index(date)):
        return Availability(False, OFF_DUTY_REASON)
    return Availability(True)
