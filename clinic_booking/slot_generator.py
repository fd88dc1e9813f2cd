"""Daily slot generation for a doctor.

Every working day has the same grid of 30-minute slots:
    Morning:   8:00 AM - 12:00 PM
    Afternoon: 1:00 PM - 4:00 PM
"""

import re

from clinic_booking.scheduling.database.models import Slot

SLOT_MINUTES = 30

# (start_hour, end_hour), end exclusive
SLOT_RANGES = [(8, 12), (13, 16)]

SLOT_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([AaPp])\.?\s*[Mm]\.?\s*$")


def format_slot_time(minutes: int) -> str:
    """Format minutes since midnight as a zero-padded 12-hour time, e.g. "01:30 PM"."""
    hour, mins = divmod(minutes, 60)
    period = "PM" if hour >= 12 else "AM"
    display_hour = hour % 12 or 12
    return f"{display_hour:02d}:{mins:02d} {period}"


def slot_time_to_minutes(time: str) -> int:
    """Inverse of format_slot_time. Raises ValueError for unrecognized strings."""
    match = SLOT_TIME_RE.match(time or "")
    if not match:
        raise ValueError(f"Unrecognized slot time: {time!r}")
    hour, mins, period = int(match.group(1)), int(match.group(2) or 0), match.group(3).upper()
    if not 1 <= hour <= 12 or mins > 59:
        raise ValueError(f"Unrecognized slot time: {time!r}")
    hour %= 12
    if period == "P":
        hour += 12
    return hour * 60 + mins


def slot_sort_key(time: str) -> tuple:
    """Order canonical times chronologically; anything unparseable sorts after them by text."""
    try:
        return (0, slot_time_to_minutes(time), "")
    except ValueError:
        return (1, 0, time or "")


def normalize_slot_time(time: str) -> str:
    """Coerce loose spellings ("9am", "9:00 a.m.") into the canonical slot format.

    Anything that can't be parsed is returned unchanged so the booking lookup
    reports it as unavailable.
    """
    try:
        return format_slot_time(slot_time_to_minutes(time))
    except ValueError:
        return time


def generate_daily_slots(doctor_id: str = "", date: str = "") -> list[Slot]:
    """Build the (unsaved) slots for one doctor on one date, in time order."""
    slots = []
    for start_hour, end_hour in SLOT_RANGES:
        for minutes in range(start_hour * 60, end_hour * 60, SLOT_MINUTES):
            slots.append(Slot(id=None, doctor_id=doctor_id, date=date, time=format_slot_time(minutes)))
    return slots
