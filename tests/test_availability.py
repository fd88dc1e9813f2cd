"""Tests for weekly patterns and availability resolution."""

import pytest

from clinic_booking.availability import (
    OFF_DUTY_REASON,
    Availability,
    WeeklyPattern,
    check_availability,
)
from clinic_booking.date_utils import format_display_date, format_display_datetime, parse_date, weekday_index

SATURDAY = "2025-03-01"
SUNDAY = "2025-03-02"
MONDAY = "2025-03-03"
TUESDAY = "2025-03-04"
FRIDAY = "2025-03-07"


class TestWeeklyPattern:
    """Tests for resolving availability labels."""

    @pytest.mark.parametrize("label,expected", [
        ("Mon-Fri", WeeklyPattern.MON_FRI),
        ("mon-sat", WeeklyPattern.MON_SAT),
        ("Tue-Sat (rotating)", WeeklyPattern.TUE_SAT),
        ("MON-SUN", WeeklyPattern.MON_SUN),
    ])
    def test_known_labels(self, label, expected):
        assert WeeklyPattern.from_label(label) is expected

    @pytest.mark.parametrize("label", ["Mon-Thu", "", None, "weekends"])
    def test_unknown_labels_are_unrestricted(self, label):
        assert WeeklyPattern.from_label(label) is WeeklyPattern.UNRESTRICTED

    def test_unrestricted_works_every_day(self):
        assert all(WeeklyPattern.UNRESTRICTED.works_on(day) for day in range(7))

    def test_tue_sat_days(self):
        assert WeeklyPattern.TUE_SAT.working_days == frozenset({2, 3, 4, 5, 6})


class TestCheckAvailability:
    """Tests for check_availability."""

    @pytest.mark.parametrize("date,expected", [
        (SUNDAY, False),
        (MONDAY, True),
        (TUESDAY, True),
        (FRIDAY, True),
        (SATURDAY, False),
    ])
    def test_mon_fri(self, date, expected):
        assert check_availability("Mon-Fri", date).available is expected

    def test_off_duty_reason(self):
        result = check_availability(WeeklyPattern.MON_FRI, SATURDAY)
        assert result == Availability(False, OFF_DUTY_REASON)

    def test_tue_sat_off_on_monday(self):
        assert not check_availability(WeeklyPattern.TUE_SAT, MONDAY).available
        assert check_availability(WeeklyPattern.TUE_SAT, SATURDAY).available

    def test_holiday_wins_over_pattern(self):
        result = check_availability(WeeklyPattern.MON_SUN, TUESDAY, holiday_reason="Conference")
        assert result == Availability(False, "Conference")

    def test_holiday_without_reason(self):
        result = check_availability(WeeklyPattern.MON_FRI, TUESDAY, is_holiday=True)
        assert result.reason == "Holiday"

    def test_to_dict(self):
        assert Availability(True).to_dict() == {"available": True}
        assert Availability(False, "Vacation").to_dict() == {"available": False, "reason": "Vacation"}


class TestDateUtils:
    """Tests for calendar helpers."""

    def test_weekday_index_sunday_first(self):
        assert weekday_index(SUNDAY) == 0
        assert weekday_index(MONDAY) == 1
        assert weekday_index(SATURDAY) == 6

    @pytest.mark.parametrize("value", ["2025-3-4", "04/03/2025", "2025-02-30", "", None])
    def test_parse_date_rejects(self, value):
        with pytest.raises(ValueError):
            parse_date(value)

    def test_display_format(self):
        assert format_display_date("2025-03-25") == "25-Mar-2025"

    def test_display_format_passthrough(self):
        assert format_display_date("not a date") == "not a date"

    @pytest.mark.parametrize("value,expected", [
        ("2025-01-09", "09-Jan-2025"),
        ("2025-05-31", "31-May-2025"),
        ("2025-09-01", "01-Sep-2025"),
        ("2025-12-25", "25-Dec-2025"),
    ])
    def test_english_month_names(self, value, expected):
        """Month abbreviations don't follow the host locale."""
        assert format_display_date(value) == expected

    def test_display_datetime(self):
        assert format_display_datetime("2025-03-04 09:05:00") == "04-Mar-2025 09:05"
