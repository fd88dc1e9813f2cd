"""Calendar-date helpers. Dates travel as plain YYYY-MM-DD strings."""

import re
from datetime import date, datetime

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# English abbreviations regardless of the host locale
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def today() -> str:
    """Today's date as YYYY-MM-DD."""
    return date.today().isoformat()


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string, raising ValueError for anything else."""
    if not isinstance(value, str) or not ISO_DATE_RE.match(value):
        raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    return date.fromisoformat(value)


def is_iso_date(value: str) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True


def weekday_index(value: str) -> int:
    """Day of week with 0=Sunday .. 6=Saturday."""
    return parse_date(value).isoweekday() % 7


def format_display_date(value: str | date | datetime | None) -> str:
    """Format as dd-Mon-yyyy (e.g. 25-Mar-2025).

    Strings that don't parse are returned unchanged.
    """
    if not value:
        return ""
    if isinstance(value, str):
        try:
            if ISO_DATE_RE.match(value):
                value = date.fromisoformat(value)
            else:
                value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return f"{value.day:02d}-{MONTH_ABBR[value.month - 1]}-{value.year:04d}"


def format_display_datetime(value: str | datetime | None) -> str:
    """Format a timestamp (e.g. SQLite CURRENT_TIMESTAMP) as dd-Mon-yyyy HH:MM."""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return f"{format_display_date(value)} {value.strftime('%H:%M')}"
